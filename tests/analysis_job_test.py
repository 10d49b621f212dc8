import threading

from analysis.analysis_job import AnalysisJob
from analysis.errors import AnalysisCancelled, AnalysisError, DecodeError
from game.models import AnalysisResult, Beat

RESULT = AnalysisResult(bpm=128, beats=[Beat(3200, 0.9)], duration=30.0)


def test_job_publishes_result_and_progress():
    def analyzer(path, on_progress=None, cancel_event=None):
        on_progress(10)
        on_progress(60)
        return RESULT

    job = AnalysisJob("song.mp3", analyzer=analyzer).start()

    assert job.wait(5)
    assert job.done
    assert job.result == RESULT
    assert job.error is None
    assert job.progress == 60


def test_job_keeps_the_decode_error():
    def analyzer(path, on_progress=None, cancel_event=None):
        raise DecodeError()

    job = AnalysisJob("song.xyz", analyzer=analyzer).start()

    assert job.wait(5)
    assert job.result is None
    assert isinstance(job.error, DecodeError)


def test_cancelled_job_never_publishes():
    release = threading.Event()

    def analyzer(path, on_progress=None, cancel_event=None):
        release.wait(5)
        return RESULT

    job = AnalysisJob("song.mp3", analyzer=analyzer).start()
    job.cancel()
    release.set()

    assert job.wait(5)
    assert job.cancelled
    assert job.result is None


def test_cancel_reaches_the_analyzer():
    started = threading.Event()

    def analyzer(path, on_progress=None, cancel_event=None):
        started.set()
        cancel_event.wait(5)
        raise AnalysisCancelled("stopped")

    job = AnalysisJob("song.mp3", analyzer=analyzer).start()
    assert started.wait(5)
    job.cancel()

    assert job.wait(5)
    assert isinstance(job.error, AnalysisCancelled)
    assert job.result is None


def test_start_twice_runs_once():
    calls = []

    def analyzer(path, on_progress=None, cancel_event=None):
        calls.append(path)
        return RESULT

    job = AnalysisJob("song.mp3", analyzer=analyzer)
    job.start()
    job.start()

    assert job.wait(5)
    assert calls == ["song.mp3"]


def test_progress_never_goes_backwards():
    def analyzer(path, on_progress=None, cancel_event=None):
        on_progress(40)
        on_progress(30)
        return RESULT

    job = AnalysisJob("song.mp3", analyzer=analyzer).start()

    assert job.wait(5)
    assert job.progress == 40


def test_unexpected_crash_is_reported_as_retryable():
    def analyzer(path, on_progress=None, cancel_event=None):
        raise KeyError("missing")

    job = AnalysisJob("song.mp3", analyzer=analyzer).start()

    assert job.wait(5)
    assert job.result is None
    assert isinstance(job.error, AnalysisError)
    assert isinstance(job.error.__cause__, KeyError)
