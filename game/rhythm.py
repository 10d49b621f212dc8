import logging
import math
from dataclasses import replace
from typing import Optional

from . import constants as C
from . import models as M
from .clock import Clock

logger = logging.getLogger(__name__)

# ==================== JUDGMENT ====================

def check_hit(
    cursor: M.HandCursor,
    circle: M.HitCircle,
    current_time: float,
    config: C.RhythmConfig = C.DEFAULT_CONFIG,
) -> Optional[M.HitResult]:
    """
    Judges one cursor against one circle at 'current_time' (ms).

    Windows are strict upper bounds, so a diff of exactly PERFECT falls into GOOD.
    Returns None when the cursor is not touching the circle, when it touches
    outside every window, or when the circle is already resolved.
    """
    if not cursor.is_tracking or circle.is_hit:
        return None

    distance = math.dist((cursor.x, cursor.y), circle.position)
    if distance > circle.radius + config.cursor_radius:
        return None

    timing_diff = abs(current_time - circle.beat_timestamp)

    if timing_diff < config.perfect_ms:
        return M.HitResult(M.Judgment.PERFECT, config.perfect_points, maintain_combo=True)
    elif timing_diff < config.good_ms:
        return M.HitResult(M.Judgment.GOOD, config.good_points, maintain_combo=True)
    elif timing_diff < config.bad_ms:
        return M.HitResult(M.Judgment.BAD, config.bad_points, maintain_combo=False)

    return None


def check_miss(circle: M.HitCircle, current_time: float, config: C.RhythmConfig = C.DEFAULT_CONFIG) -> bool:
    """True once the BAD window after the beat has passed without a hit"""
    return not circle.is_hit and current_time > circle.beat_timestamp + config.bad_ms

# ==================== SCORING ====================

def combo_multiplier(combo: int, tiers=C.COMBO_MULTIPLIERS) -> float:
    for min_combo, multiplier in tiers:
        if combo >= min_combo:
            return multiplier
    return 1.0


def calculate_score(base_points: int, combo: int, tiers=C.COMBO_MULTIPLIERS) -> int:
    """Scales 'base_points' by the tier of the combo going into this hit"""
    return math.floor(base_points * combo_multiplier(combo, tiers))


def calculate_accuracy(perfect: int, good: int, bad: int, miss: int) -> int:
    """Weighted accuracy percentage (0-100), 100 when nothing was judged yet"""
    total = perfect + good + bad + miss
    if total == 0:
        return 100

    weighted = (
        perfect * C.PERFECT_POINTS +
        good * C.GOOD_POINTS +
        bad * C.BAD_POINTS +
        miss * C.MISS_POINTS
    )
    max_score = total * C.PERFECT_POINTS

    # round half up
    return math.floor(weighted / max_score * 100 + 0.5)


def get_grade(accuracy: float) -> str:
    """Letter rank from accuracy (like osu!)"""
    for threshold, grade in C.GRADE_THRESHOLDS:
        if accuracy >= threshold:
            return grade
    return C.LOWEST_GRADE


def register_hit(state: M.RunState, result: M.HitResult, config: C.RhythmConfig = C.DEFAULT_CONFIG) -> tuple[M.RunState, int]:
    """New state after 'result', plus the points actually awarded"""
    points = calculate_score(result.points, state.combo, config.combo_multipliers)
    combo = state.combo + 1 if result.maintain_combo else 0

    counts = {
        M.Judgment.PERFECT: {"perfect_count": state.perfect_count + 1},
        M.Judgment.GOOD: {"good_count": state.good_count + 1},
        M.Judgment.BAD: {"bad_count": state.bad_count + 1},
    }.get(result.type, {})

    new_state = replace(
        state,
        score=state.score + points,
        combo=combo,
        max_combo=max(state.max_combo, combo),
        **counts,
    )
    return new_state, points


def register_miss(state: M.RunState) -> M.RunState:
    return replace(state, combo=0, miss_count=state.miss_count + 1)

# ==================== FRAME ====================

def approach_progress(circle: M.HitCircle, current_time: float, config: C.RhythmConfig = C.DEFAULT_CONFIG) -> float:
    """0.0 when the circle spawns, 1.0 on its beat"""
    if config.approach_time <= 0:
        return 1.0
    progress = (current_time - circle.spawn_time) / config.approach_time
    return max(0.0, min(1.0, progress))


def reset_circles(circles: list[M.HitCircle]) -> None:
    for circle in circles:
        circle.is_visible = False
        circle.is_hit = False
        circle.hit_result = M.Judgment.NONE


def advance_frame(
    circles: list[M.HitCircle],
    state: M.RunState,
    current_time: float,
    cursors: list[M.HandCursor],
    config: C.RhythmConfig = C.DEFAULT_CONFIG,
) -> M.FrameResult:
    """
    Moves every circle forward to 'current_time' (ms) and judges 'cursors'.

    Per frame: show circles whose spawn time has come, miss the ones whose BAD
    window has passed, then test each live circle against the cursors in
    detection order (first qualifying cursor wins). Resolved circles are never
    touched again, so repeating a frame is a no-op. 'state' is not mutated.
    """
    events: list[M.HitEvent] = []

    for circle in circles:
        if circle.is_hit:
            continue

        if current_time >= circle.spawn_time:
            circle.is_visible = True

        if check_miss(circle, current_time, config):
            circle.is_hit = True
            circle.hit_result = M.Judgment.MISS
            state = register_miss(state)
            events.append(M.HitEvent(circle.id, circle.x, circle.y, M.Judgment.MISS, 0, 0))

    for circle in circles:
        if circle.is_hit or not circle.is_visible:
            continue

        for cursor in cursors:
            result = check_hit(cursor, circle, current_time, config)
            if result is None:
                continue

            circle.is_hit = True
            circle.hit_result = result.type
            state, points = register_hit(state, result, config)
            events.append(M.HitEvent(circle.id, circle.x, circle.y, result.type, points, state.combo))
            break

    return M.FrameResult(
        clock=current_time,
        state=state,
        events=events,
        visible_circles=[c for c in circles if c.is_visible and not c.is_hit],
        cursors=list(cursors),
    )

# ==================== MANAGER ====================

class RhythmManager:
    """
    Owns the circles and run state of one play-through and feeds advance_frame
    with the current time from 'clock' (the audio position in production, a
    manual clock in tests).
    """
    def __init__(self, circles: list[M.HitCircle], clock: Clock, config: C.RhythmConfig = C.DEFAULT_CONFIG):
        self.circles = circles
        self.clock = clock
        self.config = config
        self.state = M.RunState()

    def reset(self) -> None:
        """Fresh run: clears circle flags and all counters"""
        reset_circles(self.circles)
        self.state = M.RunState()

    def update(self, cursors: list[M.HandCursor]) -> M.FrameResult:
        """Advance one frame using the latest cursor snapshot"""
        frame = advance_frame(self.circles, self.state, self.clock.now_ms(), cursors, self.config)
        self.state = frame.state
        return frame

    def is_finished(self) -> bool:
        """Every circle has been hit or missed"""
        return all(c.is_hit for c in self.circles)

    def get_accuracy(self) -> int:
        s = self.state
        return calculate_accuracy(s.perfect_count, s.good_count, s.bad_count, s.miss_count)

    def summary(self) -> M.RunSummary:
        """Frozen end-of-run numbers for the results screen"""
        accuracy = self.get_accuracy()
        s = self.state
        summary = M.RunSummary(
            score=s.score,
            max_combo=s.max_combo,
            perfect_count=s.perfect_count,
            good_count=s.good_count,
            bad_count=s.bad_count,
            miss_count=s.miss_count,
            accuracy=accuracy,
            grade=get_grade(accuracy),
        )
        logger.info("Run finished: score=%d accuracy=%d%% grade=%s", summary.score, accuracy, summary.grade)
        return summary
