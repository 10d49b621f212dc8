from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

# --- audio analysis

@dataclass(frozen=True)
class Beat:
    """A detected onset. timestamp is in ms, intensity is normalized to [0, 1]"""
    timestamp: float
    intensity: float

@dataclass(frozen=True)
class AnalysisResult:
    """Tempo, onsets and track length (seconds) of an analyzed song"""
    bpm: int
    beats: list[Beat]
    duration: float

# --- rhythm

class Judgment(Enum):
    NONE = "none"
    PERFECT = "perfect"
    GOOD = "good"
    BAD = "bad"
    MISS = "miss"

@dataclass
class HitCircle:
    """
    A target tied to one beat. Only is_visible, is_hit and hit_result change
    during play, and is_hit never goes back to False within a run.
    """
    id: int
    x: float
    y: float
    radius: float
    beat_timestamp: float
    spawn_time: float
    is_visible: bool = False
    is_hit: bool = False
    hit_result: Judgment = Judgment.NONE

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

@dataclass(frozen=True)
class HandCursor:
    """Index fingertip of one detected hand, in canvas coordinates"""
    x: float
    y: float
    is_tracking: bool
    hand_index: int

@dataclass(frozen=True)
class HitResult:
    type: Judgment
    points: int
    maintain_combo: bool

@dataclass(frozen=True)
class RunState:
    score: int = 0
    combo: int = 0
    max_combo: int = 0
    perfect_count: int = 0
    good_count: int = 0
    bad_count: int = 0
    miss_count: int = 0

@dataclass(frozen=True)
class HitEvent:
    """A circle that got resolved (hit or missed) during a frame"""
    circle_id: int
    x: float
    y: float
    judgment: Judgment
    points: int
    combo: int

@dataclass(frozen=True)
class FrameResult:
    """Read-only snapshot handed to the presentation layer every frame"""
    clock: float
    state: RunState
    events: list[HitEvent] = field(default_factory=list)
    visible_circles: list[HitCircle] = field(default_factory=list)
    cursors: list[HandCursor] = field(default_factory=list)

@dataclass(frozen=True)
class RunSummary:
    score: int
    max_combo: int
    perfect_count: int
    good_count: int
    bad_count: int
    miss_count: int
    accuracy: int
    grade: str

# --- effects

@dataclass
class HitFeedback:
    """Floating judgment label that fades out"""
    x: float
    y: float
    judgment: Judgment
    alpha: float = 1.0

    def update(self, fade: float) -> bool:
        """Fade one frame, returns False if should be removed"""
        self.alpha -= fade
        return self.alpha > 0

@dataclass
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    color: tuple[int, int, int]
    life: float = 1.0

    def update(self, decay: float) -> bool:
        """Move one frame, returns False if should be removed"""
        self.x += self.vx
        self.y += self.vy
        self.life -= decay
        return self.life > 0

# --- engine

class Level:
    def __init__(self, song_path: str, analysis: AnalysisResult, circles: list[HitCircle]):
        self.song_path = song_path
        self.analysis = analysis
        self.circles = circles

    @property
    def bpm(self) -> int:
        return self.analysis.bpm

# --- hand slicer

class OrbKind(Enum):
    SCORE = "score"
    KILLER = "killer"
    GOLD = "gold"

@dataclass
class Orb:
    """A falling target, speed is in px per frame"""
    id: int
    x: float
    y: float
    radius: float
    kind: OrbKind
    speed: float

@dataclass(frozen=True)
class SliceEvent:
    """An orb touched by a fingertip during a frame"""
    x: float
    y: float
    kind: OrbKind
    points: int
