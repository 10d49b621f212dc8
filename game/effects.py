import math
import random
from typing import Optional

from . import constants as C
from . import models as M


def create_burst_particles(
    x: float,
    y: float,
    color: tuple[int, int, int],
    count: int = C.PARTICLE_COUNT,
    rng: Optional[random.Random] = None,
) -> list[M.Particle]:
    """Ring of particles flying outwards, evenly spread in angle"""
    rand = rng if rng is not None else random
    particles = []

    for i in range(count):
        angle = math.pi * 2 * i / count
        speed = C.PARTICLE_MIN_SPEED + rand.random() * C.PARTICLE_SPEED_RANGE
        particles.append(M.Particle(
            x=x,
            y=y,
            vx=math.cos(angle) * speed,
            vy=math.sin(angle) * speed,
            color=color,
        ))

    return particles


class EffectsLayer:
    """
    Cosmetic state that lives only on the presentation side: fading judgment
    labels for every resolved circle and a particle burst for every hit.
    """
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng
        self.feedbacks: list[M.HitFeedback] = []
        self.particles: list[M.Particle] = []

    def clear(self) -> None:
        self.feedbacks.clear()
        self.particles.clear()

    def spawn(self, events: list[M.HitEvent]) -> None:
        for event in events:
            self.feedbacks.append(M.HitFeedback(event.x, event.y, event.judgment))

            if event.judgment != M.Judgment.MISS:
                self.burst(event.x, event.y, C.JUDGMENT_COLORS[event.judgment.value])

    def burst(self, x: float, y: float, color: tuple[int, int, int]) -> None:
        self.particles.extend(create_burst_particles(x, y, color, rng=self.rng))

    def update(self) -> None:
        """Advance one frame, dropping whatever has faded out"""
        self.particles = [p for p in self.particles if p.update(C.PARTICLE_DECAY_PER_FRAME)]
        self.feedbacks = [f for f in self.feedbacks if f.update(C.FEEDBACK_FADE_PER_FRAME)]
