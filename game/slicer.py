import logging
import math
import random
from typing import Optional

from . import constants as C
from . import models as M

logger = logging.getLogger(__name__)


class SlicerGame:
    """
    Hand slicer: orbs fall from the top and the index fingertips slice them.

    Green orbs score and cost a life when they fall out, red orbs end the game
    when touched, gold orbs score double and start a buff. While the buff is
    active every orb is gold, killers are harmless and nothing costs a life.

    Time comes in as a millisecond timestamp (any monotonic clock), movement is
    per call, one call per rendered frame.
    """
    def __init__(
        self,
        width: float = C.CANVAS_WIDTH,
        height: float = C.CANVAS_HEIGHT,
        rng: Optional[random.Random] = None,
    ):
        self.width = width
        self.height = height
        self.rng = rng if rng is not None else random.Random()
        self.reset(0)

    def reset(self, now_ms: float):
        self.score = 0
        self.lives = C.SLICER_LIVES
        self.game_over = False
        self.orbs: list[M.Orb] = []
        self.trails: dict[int, list[tuple[float, float]]] = {}
        self.last_spawn_ms = now_ms
        self.buff_active = False
        self.buff_end_ms = 0.0
        self._next_id = 0

    # ----- difficulty

    def spawn_interval(self) -> int:
        """Ms between spawns, shrinking every 10 points down to a floor"""
        return max(C.ORB_SPAWN_MIN_MS, C.ORB_SPAWN_BASE_MS - (self.score // 10) * C.ORB_SPAWN_STEP_MS)

    def orb_speed(self) -> float:
        return C.ORB_BASE_SPEED + (self.score // 50) * C.ORB_SPEED_STEP

    # ----- spawning

    def roll_kind(self) -> M.OrbKind:
        if self.buff_active:
            return M.OrbKind.GOLD
        roll = self.rng.random()
        if roll > C.GOLD_ORB_ROLL:
            return M.OrbKind.GOLD
        if roll > C.KILLER_ORB_ROLL:
            return M.OrbKind.SCORE
        return M.OrbKind.KILLER

    def maybe_spawn(self, now_ms: float) -> Optional[M.Orb]:
        if now_ms - self.last_spawn_ms <= self.spawn_interval():
            return None

        r = C.ORB_RADIUS
        kind = self.roll_kind()
        orb = M.Orb(
            id=self._next_id,
            x=self.rng.random() * (self.width - 2 * r) + r,
            y=-r,
            radius=r,
            kind=kind,
            speed=self.orb_speed(),
        )
        self._next_id += 1
        self.orbs.append(orb)
        self.last_spawn_ms = now_ms
        return orb

    # ----- buff

    def activate_buff(self, now_ms: float):
        """Ten seconds of gold. Does not stack or extend while running."""
        if self.buff_active:
            return
        self.buff_active = True
        self.buff_end_ms = now_ms + C.BUFF_DURATION_MS
        for orb in self.orbs:
            orb.kind = M.OrbKind.GOLD
        logger.info("Gold buff active for %ds", C.BUFF_DURATION_MS // 1000)

    def buff_time_left(self, now_ms: float) -> int:
        """Whole seconds left, rounded up, 0 when inactive"""
        if not self.buff_active:
            return 0
        return max(0, math.ceil((self.buff_end_ms - now_ms) / 1000))

    # ----- frame

    def update_trails(self, cursors: list[M.HandCursor]):
        if not cursors:
            self.trails.clear()
            return
        for cursor in cursors:
            trail = self.trails.setdefault(cursor.hand_index, [])
            trail.append((cursor.x, cursor.y))
            del trail[:-C.FINGER_TRAIL_LENGTH]

    def is_touched(self, orb: M.Orb, cursors: list[M.HandCursor]) -> bool:
        reach = orb.radius + C.ORB_TOUCH_PADDING
        return any(math.dist((c.x, c.y), (orb.x, orb.y)) < reach for c in cursors)

    def update(self, now_ms: float, cursors: list[M.HandCursor]) -> list[M.SliceEvent]:
        """Advance one frame. Returns the orbs sliced this frame."""
        if self.game_over:
            return []

        if self.buff_active and now_ms >= self.buff_end_ms:
            self.buff_active = False
            logger.debug("Gold buff ended")

        self.maybe_spawn(now_ms)

        cursors = [c for c in cursors if c.is_tracking]
        self.update_trails(cursors)

        events: list[M.SliceEvent] = []
        remaining: list[M.Orb] = []
        for orb in self.orbs:
            orb.y += orb.speed

            if orb.y - orb.radius > self.height:
                if orb.kind == M.OrbKind.SCORE and not self.buff_active:
                    self.lives -= 1
                    if self.lives <= 0:
                        self._end("out of lives")
                        break
                continue

            if not self.is_touched(orb, cursors):
                remaining.append(orb)
                continue

            if orb.kind == M.OrbKind.KILLER:
                events.append(M.SliceEvent(orb.x, orb.y, orb.kind, 0))
                if not self.buff_active:
                    self._end("sliced a killer orb")
                    break
                continue

            points = C.GOLD_ORB_POINTS if orb.kind == M.OrbKind.GOLD else C.ORB_POINTS
            self.score += points
            events.append(M.SliceEvent(orb.x, orb.y, orb.kind, points))
            if orb.kind == M.OrbKind.GOLD:
                self.activate_buff(now_ms)

        # the board freezes as it was when the game ended
        if not self.game_over:
            self.orbs = remaining
        return events

    def _end(self, reason: str):
        self.game_over = True
        self.buff_active = False
        logger.info("Slicer over (%s), final score %d", reason, self.score)
