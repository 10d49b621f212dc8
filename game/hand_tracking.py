from __future__ import annotations

import logging
import os
import platform
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

import cv2
import pygame

from . import constants as C
from . import models as M

logger = logging.getLogger(__name__)

Landmark = Tuple[float, float]  # normalized (x, y) in [0, 1]


class HandTracker(Protocol):
    """
    Anything that turns camera frames into hand landmarks: a vendored model, a
    remote service or a test double. Only the latest completed snapshot is
    read; the frame loop never waits for fresh inference.
    """

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def latest_hands(self) -> List[List[Landmark]]: ...

    def latest_frame(self): ...


def cursors_from_hands(hands: Sequence[Sequence[Landmark]], width: float, height: float) -> List[M.HandCursor]:
    """Index fingertip of every hand, mirrored into canvas coordinates (selfie view)."""
    cursors: List[M.HandCursor] = []
    for hand_index, landmarks in enumerate(hands):
        if len(landmarks) <= C.INDEX_FINGER_TIP:
            continue
        nx, ny = landmarks[C.INDEX_FINGER_TIP][:2]
        cursors.append(
            M.HandCursor(
                x=(1 - float(nx)) * width,
                y=float(ny) * height,
                is_tracking=True,
                hand_index=hand_index,
            )
        )
    return cursors


@dataclass(frozen=True)
class _SolutionsBackend:
    hands: object


@dataclass(frozen=True)
class _TasksBackend:
    mp: object
    landmarker: object


def _try_create_solutions_backend(
    max_num_hands: int,
    model_complexity: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> Optional[_SolutionsBackend]:
    import mediapipe as mp  # type: ignore

    if not hasattr(mp, "solutions"):
        return None
    hands = mp.solutions.hands.Hands(
        static_image_mode=False,
        max_num_hands=max_num_hands,
        model_complexity=model_complexity,
        min_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _SolutionsBackend(hands=hands)


def _try_create_tasks_backend(
    model_path: str,
    max_num_hands: int,
    min_detection_confidence: float,
    min_tracking_confidence: float,
) -> _TasksBackend:
    """
    For MediaPipe builds without `mp.solutions`. The Tasks HandLandmarker needs
    a `.task` model file on disk.
    """
    import mediapipe as mp  # type: ignore
    from mediapipe.tasks.python import BaseOptions  # type: ignore
    from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode  # type: ignore

    if not os.path.exists(model_path):
        raise FileNotFoundError(model_path)

    options = HandLandmarkerOptions(
        base_options=BaseOptions(model_asset_path=model_path),
        running_mode=RunningMode.VIDEO,
        num_hands=max_num_hands,
        min_hand_detection_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return _TasksBackend(mp=mp, landmarker=HandLandmarker.create_from_options(options))


class MediaPipeHandTracker:
    """
    Webcam + MediaPipe Hands on a background thread.

    The thread keeps overwriting one snapshot (landmarks and the BGR frame they
    came from) under a lock, so a game frame may see a slightly stale hand.
    """

    def __init__(
        self,
        camera_index: int = 0,
        max_num_hands: int = C.MAX_NUM_HANDS,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        tasks_model_path: str = "models/hand_landmarker.task",
        capture_size: Tuple[int, int] = (C.CANVAS_WIDTH, C.CANVAS_HEIGHT),
    ) -> None:
        self.camera_index = camera_index
        self.max_num_hands = max_num_hands
        self.model_complexity = model_complexity
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.tasks_model_path = tasks_model_path
        self.capture_size = capture_size

        self._solutions: Optional[_SolutionsBackend] = None
        self._tasks: Optional[_TasksBackend] = None
        self._tasks_timestamp_ms = 0

        self._cap = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._hands: List[List[Landmark]] = []
        self._frame = None

    def start(self) -> None:
        if self._thread is not None:
            return

        self._create_backend()

        if platform.system() == "Darwin":
            cap = cv2.VideoCapture(self.camera_index, cv2.CAP_AVFOUNDATION)
        else:
            cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            self._close_backend()
            raise RuntimeError(
                f"Could not open camera index {self.camera_index}. "
                "Check that no other app is using it and that camera access is allowed, "
                "or run with --mouse to play without a camera."
            )
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.capture_size[0])
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.capture_size[1])
        self._cap = cap

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="hand-tracker", daemon=True)
        self._thread.start()
        logger.info("Hand tracker started on camera %d", self.camera_index)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._close_backend()

    def __enter__(self) -> "MediaPipeHandTracker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def latest_hands(self) -> List[List[Landmark]]:
        with self._lock:
            return list(self._hands)

    def latest_frame(self):
        with self._lock:
            return self._frame

    def _create_backend(self) -> None:
        self._solutions = _try_create_solutions_backend(
            max_num_hands=self.max_num_hands,
            model_complexity=self.model_complexity,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )
        if self._solutions is not None:
            return

        try:
            self._tasks = _try_create_tasks_backend(
                model_path=self.tasks_model_path,
                max_num_hands=self.max_num_hands,
                min_detection_confidence=self.min_detection_confidence,
                min_tracking_confidence=self.min_tracking_confidence,
            )
        except FileNotFoundError as e:
            raise RuntimeError(
                "MediaPipe does not provide `mp.solutions` in your environment, so the\n"
                "Tasks HandLandmarker is used instead, which needs a model file on disk:\n"
                f"  {self.tasks_model_path}\n\n"
                "Download hand_landmarker.task and pass it with --hand-model."
            ) from e

    def _close_backend(self) -> None:
        if self._solutions is not None:
            self._solutions.hands.close()
            self._solutions = None
        if self._tasks is not None:
            self._tasks.landmarker.close()
            self._tasks = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            ok, frame_bgr = self._cap.read()
            if not ok:
                time.sleep(0.01)
                continue

            hands = self._detect(frame_bgr)
            with self._lock:
                self._hands = hands
                self._frame = frame_bgr

    def _detect(self, frame_bgr) -> List[List[Landmark]]:
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        if self._solutions is not None:
            results = self._solutions.hands.process(frame_rgb)
            if not results.multi_hand_landmarks:
                return []
            return [
                [(float(lm.x), float(lm.y)) for lm in hand.landmark]
                for hand in results.multi_hand_landmarks
            ]

        if self._tasks is None:
            return []

        mp = self._tasks.mp
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)

        # VIDEO mode requires strictly increasing timestamps
        self._tasks_timestamp_ms = max(self._tasks_timestamp_ms + 1, int(time.monotonic() * 1000))
        result = self._tasks.landmarker.detect_for_video(mp_image, self._tasks_timestamp_ms)

        hand_landmarks_list = getattr(result, "hand_landmarks", None) or []
        return [[(float(lm.x), float(lm.y)) for lm in landmarks] for landmarks in hand_landmarks_list]


class MouseHandTracker:
    """Pretends the mouse pointer is a single index fingertip. For playing without a camera."""

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def latest_hands(self) -> List[List[Landmark]]:
        surface = pygame.display.get_surface()
        if surface is None or not pygame.mouse.get_focused():
            return []

        w, h = surface.get_size()
        mx, my = pygame.mouse.get_pos()
        # pre-mirror so cursors_from_hands lands back on the pointer
        point = (1 - mx / w, my / h)
        return [[point] * C.HAND_LANDMARK_COUNT]

    def latest_frame(self):
        return None
