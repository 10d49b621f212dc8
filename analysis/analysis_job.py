from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import game.models as M
from analysis.audio_analysis import analyze_file
from analysis.errors import AnalysisCancelled, AnalysisError, BeatAnalysisError

logger = logging.getLogger(__name__)


class AnalysisJob:
    """
    Runs analyze_file on a background thread so the menu keeps drawing.

    The frame loop polls 'progress' and 'done'. Picking a new song cancels the
    running job; a cancelled job never publishes a result.
    """

    def __init__(
        self,
        audio_path: str,
        analyzer: Callable[..., M.AnalysisResult] = analyze_file,
    ) -> None:
        self.audio_path = audio_path
        self._analyzer = analyzer
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

        self._progress = 0
        self._result: Optional[M.AnalysisResult] = None
        self._error: Optional[BeatAnalysisError] = None
        self._done = threading.Event()

    def start(self) -> "AnalysisJob":
        if self._thread is not None:
            return self
        self._thread = threading.Thread(
            target=self._run, name=f"analysis:{self.audio_path}", daemon=True
        )
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def progress(self) -> int:
        with self._lock:
            return self._progress

    @property
    def result(self) -> Optional[M.AnalysisResult]:
        with self._lock:
            return None if self.cancelled else self._result

    @property
    def error(self) -> Optional[BeatAnalysisError]:
        with self._lock:
            return self._error

    def _on_progress(self, value: int) -> None:
        with self._lock:
            self._progress = max(self._progress, value)

    def _run(self) -> None:
        try:
            result = self._analyzer(
                self.audio_path,
                on_progress=self._on_progress,
                cancel_event=self._cancel_event,
            )
        except AnalysisCancelled as e:
            logger.info("Analysis of %s cancelled", self.audio_path)
            with self._lock:
                self._error = e
        except BeatAnalysisError as e:
            with self._lock:
                self._error = e
        except Exception as e:
            logger.exception("Analysis of %s failed", self.audio_path)
            with self._lock:
                self._error = AnalysisError("Failed to analyze audio. Please try again.")
                self._error.__cause__ = e
        else:
            with self._lock:
                if not self.cancelled:
                    self._result = result
        finally:
            self._done.set()
