import math
import random

from game.constants import JUDGMENT_COLORS, PARTICLE_COUNT
from game.effects import EffectsLayer, create_burst_particles
from game.models import HitEvent, HitFeedback, Judgment, Particle


def test_burst_is_an_even_ring():
    particles = create_burst_particles(100, 200, (255, 0, 0), count=4, rng=random.Random(0))

    assert len(particles) == 4
    angles = [math.atan2(p.vy, p.vx) for p in particles]
    assert math.isclose(angles[0], 0.0, abs_tol=1e-9)
    assert math.isclose(angles[1], math.pi / 2, abs_tol=1e-9)
    for p in particles:
        assert (p.x, p.y) == (100, 200)
        assert 2.0 <= math.hypot(p.vx, p.vy) <= 5.0
        assert p.life == 1.0


def test_particle_moves_and_dies():
    p = Particle(x=0, y=0, vx=1, vy=-2, color=(0, 0, 0))

    assert p.update(0.5)
    assert (p.x, p.y) == (1, -2)
    assert not p.update(0.5)


def test_feedback_fades_out_after_about_fifty_frames():
    feedback = HitFeedback(0, 0, Judgment.GOOD)

    for _ in range(49):
        assert feedback.update(0.02)
    alive = [feedback.update(0.02) for _ in range(2)]

    assert alive[-1] is False


def test_hits_get_particles_misses_do_not():
    layer = EffectsLayer(rng=random.Random(1))

    layer.spawn([
        HitEvent(0, 10, 10, Judgment.PERFECT, 300, 1),
        HitEvent(1, 50, 50, Judgment.MISS, 0, 0),
    ])

    assert len(layer.feedbacks) == 2
    assert len(layer.particles) == PARTICLE_COUNT
    assert all(p.color == JUDGMENT_COLORS["perfect"] for p in layer.particles)


def test_layer_drops_faded_effects():
    layer = EffectsLayer(rng=random.Random(2))
    layer.spawn([HitEvent(0, 10, 10, Judgment.BAD, 50, 0)])

    for _ in range(60):
        layer.update()

    assert layer.feedbacks == []
    assert layer.particles == []


def test_clear():
    layer = EffectsLayer()
    layer.spawn([HitEvent(0, 10, 10, Judgment.GOOD, 100, 1)])

    layer.clear()

    assert layer.feedbacks == []
    assert layer.particles == []
