# readable by librosa for analysis and by SDL_mixer for playback
SUPPORTED_FORMATS = ("MP3", "WAV", "OGG", "Opus", "FLAC")


class BeatAnalysisError(Exception):
    """Base class for everything the beat analyzer can raise"""


class DecodeError(BeatAnalysisError):
    """The audio could not be read or decoded. Needs a different file, retrying won't help."""

    def __init__(self, message: str | None = None):
        if message is None:
            message = (
                "Audio format not supported. Please try one of: "
                + ", ".join(SUPPORTED_FORMATS) + "."
            )
        super().__init__(message)


class AnalysisError(BeatAnalysisError):
    """Unexpected failure while estimating BPM or onsets. Safe to retry with the same input."""


class AnalysisCancelled(BeatAnalysisError):
    """Analysis was abandoned before it finished (e.g. a new file was picked)"""


class EmptyResultWarning(UserWarning):
    """No beat survived filtering, so there is nothing to play"""
