from __future__ import annotations

from typing import Protocol

import pygame


class Clock(Protocol):
    def now_ms(self) -> float:
        """Current song time in milliseconds"""
        ...


class MixerClock:
    """
    Song time read from pygame.mixer.music, the audio position is the source
    of truth. Holds its last value once playback stops (get_pos() returns -1).
    """

    def __init__(self, offset_ms: float = 0.0) -> None:
        self.offset_ms = float(offset_ms)
        self._last_ms = 0.0

    def reset(self) -> None:
        self._last_ms = 0.0

    def now_ms(self) -> float:
        pos = pygame.mixer.music.get_pos()
        if pos >= 0:
            self._last_ms = max(self._last_ms, float(pos) + self.offset_ms)
        return self._last_ms


class ManualClock:
    """Clock driven by hand, for tests and replays"""

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)

    def set(self, now_ms: float) -> None:
        self._now_ms = float(now_ms)

    def advance(self, delta_ms: float) -> float:
        self._now_ms += float(delta_ms)
        return self._now_ms

    def now_ms(self) -> float:
        return self._now_ms


class TicksClock:
    """Wall time since pygame.init(), for modes that play without a song"""

    def now_ms(self) -> float:
        return float(pygame.time.get_ticks())
