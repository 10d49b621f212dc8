import random

import pytest

from analysis.errors import EmptyResultWarning
from game.beatmap_generator import enforce_min_gap, filter_beats, generate_hit_circles
from game.constants import APPROACH_TIME, CANVAS_HEIGHT, CANVAS_WIDTH, HIT_CIRCLE_RADIUS, RhythmConfig
from game.models import Beat, Judgment


def make_beats(timestamps, intensity=0.9):
    return [Beat(timestamp=t, intensity=intensity) for t in timestamps]


def test_three_spaced_strong_beats_all_survive():
    beats = make_beats([3200, 4000, 5000])

    circles = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, rng=random.Random(1))

    assert [c.beat_timestamp for c in circles] == [3200, 4000, 5000]
    assert [c.id for c in circles] == [0, 1, 2]


def test_spawn_time_is_beat_minus_approach_time():
    beats = make_beats(range(3000, 20000, 700))

    circles = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, rng=random.Random(2))

    assert circles
    for circle in circles:
        assert circle.spawn_time == circle.beat_timestamp - APPROACH_TIME
        assert circle.spawn_time >= 0


def test_new_circles_start_hidden_and_unresolved():
    circles = generate_hit_circles(make_beats([4000]), CANVAS_WIDTH, CANVAS_HEIGHT)

    assert circles[0].is_visible is False
    assert circles[0].is_hit is False
    assert circles[0].hit_result == Judgment.NONE
    assert circles[0].radius == HIT_CIRCLE_RADIUS


def test_early_beats_are_dropped():
    beats = make_beats([0, 1000, 2999, 3000, 3700])

    kept = filter_beats(beats)

    assert [b.timestamp for b in kept] == [3000, 3700]


def test_weak_beats_are_dropped():
    beats = [
        Beat(4000, 0.59),
        Beat(5000, 0.6),
        Beat(6000, 1.0),
        Beat(7000, 0.2),
    ]

    kept = filter_beats(beats)

    assert [b.timestamp for b in kept] == [5000, 6000]
    assert all(b.intensity >= 0.6 for b in kept)


def test_spacing_is_greedy_from_the_last_kept_beat():
    # 3500 is dropped (400 after 3100), so 3800 is measured against 3100 and kept
    beats = make_beats([3100, 3500, 3800, 4300, 4400])

    kept = enforce_min_gap(beats, 600)

    assert [b.timestamp for b in kept] == [3100, 3800, 4400]


def test_spacing_exactly_min_gap_is_kept():
    kept = enforce_min_gap(make_beats([3000, 3600]), 600)
    assert len(kept) == 2


def test_unsorted_input_is_sorted_before_spacing():
    beats = make_beats([5000, 3000, 4000, 3300])

    kept = filter_beats(beats)

    assert [b.timestamp for b in kept] == [3000, 4000, 5000]


def test_consecutive_circles_are_at_least_min_gap_apart():
    rng = random.Random(7)
    beats = [Beat(rng.uniform(0, 60000), rng.random()) for _ in range(400)]

    circles = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, rng=rng)

    times = [c.beat_timestamp for c in circles]
    assert times == sorted(times)
    for a, b in zip(times, times[1:]):
        assert b - a >= 600


def test_circles_stay_inside_the_margin():
    beats = make_beats(range(3000, 100000, 600))
    margin = HIT_CIRCLE_RADIUS * 2

    circles = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, rng=random.Random(3))

    for c in circles:
        assert margin <= c.x <= CANVAS_WIDTH - margin
        assert margin <= c.y <= CANVAS_HEIGHT - margin


def test_same_seed_gives_same_layout():
    beats = make_beats([3200, 4000, 5000])

    a = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, rng=random.Random(42))
    b = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, rng=random.Random(42))

    assert [(c.x, c.y) for c in a] == [(c.x, c.y) for c in b]


def test_no_surviving_beats_warns_and_returns_empty():
    beats = make_beats([100, 200, 5000], intensity=0.1)

    with pytest.warns(EmptyResultWarning):
        circles = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT)

    assert circles == []


def test_custom_config_is_respected():
    config = RhythmConfig(approach_time=1000, min_gap_ms=200, min_intensity=0.3, hit_circle_radius=40)
    beats = make_beats([1000, 1100, 1300], intensity=0.4)

    circles = generate_hit_circles(beats, CANVAS_WIDTH, CANVAS_HEIGHT, config=config)

    assert [c.beat_timestamp for c in circles] == [1000, 1300]
    assert [c.spawn_time for c in circles] == [0, 300]
    assert all(c.radius == 40 for c in circles)
