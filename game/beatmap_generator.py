import logging
import random
import warnings
from typing import Optional

from analysis.errors import EmptyResultWarning
from . import constants as C
from . import models as M

logger = logging.getLogger(__name__)

# ==================== BEAT FILTERING ====================

def drop_early_beats(beats: list[M.Beat], approach_time: float) -> list[M.Beat]:
    """Beats before 'approach_time' have no room for the approach animation."""
    return [b for b in beats if b.timestamp >= approach_time]


def drop_weak_beats(beats: list[M.Beat], min_intensity: float) -> list[M.Beat]:
    return [b for b in beats if b.intensity >= min_intensity]


def enforce_min_gap(beats: list[M.Beat], min_gap_ms: float) -> list[M.Beat]:
    """
    Greedy forward scan: keep a beat only if it is at least 'min_gap_ms' after
    the last kept one. Earlier beats win, so this is not a global optimum.
    """
    spaced: list[M.Beat] = []
    last_timestamp = -float('inf')

    for beat in sorted(beats, key=lambda b: b.timestamp):
        if beat.timestamp - last_timestamp >= min_gap_ms:
            spaced.append(beat)
            last_timestamp = beat.timestamp

    return spaced


def filter_beats(beats: list[M.Beat], config: C.RhythmConfig = C.DEFAULT_CONFIG) -> list[M.Beat]:
    """Narrows raw onsets down to a beginner friendly subset, sorted by time."""
    logger.info("Starting with %d raw beats", len(beats))

    timed = drop_early_beats(beats, config.approach_time)
    logger.info("After time filter: %d beats (removed %d early beats)", len(timed), len(beats) - len(timed))

    strong = drop_weak_beats(timed, config.min_intensity)
    logger.info(
        "After intensity filter (>=%s): %d beats (removed %d weak beats)",
        config.min_intensity, len(strong), len(timed) - len(strong),
    )

    spaced = enforce_min_gap(strong, config.min_gap_ms)
    logger.info(
        "After spacing filter (>=%sms): %d beats (removed %d closely-spaced beats)",
        config.min_gap_ms, len(spaced), len(strong) - len(spaced),
    )

    return spaced

# ==================== CIRCLES ====================

def generate_hit_circles(
    beats: list[M.Beat],
    canvas_width: float,
    canvas_height: float,
    config: C.RhythmConfig = C.DEFAULT_CONFIG,
    rng: Optional[random.Random] = None,
) -> list[M.HitCircle]:
    """
    One HitCircle per beat that survives filter_beats, placed at a random spot
    at least two radii away from every edge.

    An empty list is valid output (nothing playable); an EmptyResultWarning is
    issued so callers can refuse to start the run.
    """
    rand = rng if rng is not None else random
    spaced = filter_beats(beats, config)

    if not spaced:
        logger.warning("No beats passed all filters")
        warnings.warn("No playable beats found in this song", EmptyResultWarning, stacklevel=2)
        return []

    margin = config.hit_circle_radius * 2

    return [
        M.HitCircle(
            id=idx,
            x=rand.uniform(margin, canvas_width - margin),
            y=rand.uniform(margin, canvas_height - margin),
            radius=config.hit_circle_radius,
            beat_timestamp=beat.timestamp,
            spawn_time=beat.timestamp - config.approach_time,
        )
        for idx, beat in enumerate(spaced)
    ]
