import pytest

from game.constants import BUFF_DURATION_MS, FINGER_TRAIL_LENGTH, ORB_RADIUS, SLICER_LIVES
from game.models import HandCursor, Orb, OrbKind
from game.slicer import SlicerGame

W, H = 1280, 720


class ScriptedRandom:
    """random() answers in a fixed order"""
    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


def make_game(*rolls):
    game = SlicerGame(W, H, rng=ScriptedRandom(*rolls))
    game.reset(0)
    return game


def place(game, kind, x=400, y=300, speed=0, orb_id=0):
    orb = Orb(id=orb_id, x=x, y=y, radius=ORB_RADIUS, kind=kind, speed=speed)
    game.orbs.append(orb)
    return orb


def tip(x, y, hand_index=0, tracking=True):
    return HandCursor(x=x, y=y, is_tracking=tracking, hand_index=hand_index)

# ==================== DIFFICULTY ====================

@pytest.mark.parametrize("score, interval", [(0, 1000), (9, 1000), (10, 950), (95, 550), (120, 400), (500, 400)])
def test_spawn_interval_shrinks_with_score(score, interval):
    game = make_game()
    game.score = score
    assert game.spawn_interval() == interval


@pytest.mark.parametrize("score, speed", [(0, 3.0), (49, 3.0), (50, 3.5), (120, 4.0)])
def test_orbs_fall_faster_with_score(score, speed):
    game = make_game()
    game.score = score
    assert game.orb_speed() == speed

# ==================== SPAWNING ====================

def test_no_spawn_until_the_interval_has_passed():
    game = make_game(0.5, 0.5)

    assert game.maybe_spawn(1000) is None
    orb = game.maybe_spawn(1001)

    assert orb.kind == OrbKind.SCORE
    assert orb.y == -ORB_RADIUS
    assert orb.x == 0.5 * (W - 2 * ORB_RADIUS) + ORB_RADIUS
    assert orb.speed == 3.0
    assert game.last_spawn_ms == 1001
    assert game.maybe_spawn(1500) is None


@pytest.mark.parametrize("roll, kind", [
    (0.99, OrbKind.GOLD),
    (0.98, OrbKind.SCORE),
    (0.31, OrbKind.SCORE),
    (0.3, OrbKind.KILLER),
    (0.0, OrbKind.KILLER),
])
def test_orb_kind_rolls(roll, kind):
    assert make_game(roll).roll_kind() == kind


def test_only_gold_spawns_during_the_buff():
    game = make_game(0.5)
    game.activate_buff(0)
    assert game.roll_kind() == OrbKind.GOLD

# ==================== SLICING ====================

def test_falling_orbs_move_by_their_speed():
    game = make_game()
    orb = place(game, OrbKind.SCORE, y=100, speed=3)

    game.update(0, [])
    game.update(0, [])

    assert orb.y == 106


def test_slicing_a_green_orb_scores_ten():
    game = make_game()
    place(game, OrbKind.SCORE)

    events = game.update(0, [tip(400, 300)])

    assert game.score == 10
    assert game.orbs == []
    assert [(e.kind, e.points) for e in events] == [(OrbKind.SCORE, 10)]


def test_touch_reach_is_radius_plus_padding():
    game = make_game()
    place(game, OrbKind.SCORE, x=400)

    game.update(0, [tip(440, 300)])
    assert game.score == 0

    game.update(0, [tip(439.5, 300)])
    assert game.score == 10


def test_lost_hands_do_not_slice():
    game = make_game()
    place(game, OrbKind.SCORE)

    game.update(0, [tip(400, 300, tracking=False)])

    assert game.score == 0
    assert len(game.orbs) == 1


def test_gold_orb_scores_twenty_and_turns_the_board_gold():
    game = make_game()
    place(game, OrbKind.GOLD, x=400, orb_id=0)
    killer = place(game, OrbKind.KILLER, x=900, orb_id=1)

    game.update(5000, [tip(400, 300)])

    assert game.score == 20
    assert game.buff_active
    assert game.buff_time_left(5000) == 10
    assert game.buff_time_left(5001) == 10
    assert game.buff_time_left(14000) == 1
    assert killer.kind == OrbKind.GOLD


def test_buff_does_not_stack():
    game = make_game()
    game.activate_buff(0)
    game.activate_buff(4000)
    assert game.buff_end_ms == BUFF_DURATION_MS


def test_buff_runs_out():
    game = make_game()
    game.activate_buff(0)
    game.last_spawn_ms = BUFF_DURATION_MS

    game.update(BUFF_DURATION_MS - 1, [])
    assert game.buff_active

    game.update(BUFF_DURATION_MS, [])
    assert not game.buff_active
    assert game.buff_time_left(BUFF_DURATION_MS) == 0


def test_slicing_a_killer_ends_the_game():
    game = make_game()
    place(game, OrbKind.SCORE, x=100, orb_id=0)
    killer = place(game, OrbKind.KILLER, orb_id=1)

    events = game.update(0, [tip(400, 300)])

    assert game.game_over
    assert events[-1].kind == OrbKind.KILLER
    assert killer in game.orbs
    # the board freezes once the game is over
    assert game.update(0, [tip(100, 300)]) == []
    assert game.score == 0


def test_killers_are_harmless_during_the_buff():
    game = make_game()
    game.activate_buff(0)
    place(game, OrbKind.KILLER)

    events = game.update(0, [tip(400, 300)])

    assert not game.game_over
    assert game.orbs == []
    assert game.score == 0
    assert events[0].points == 0

# ==================== LIVES ====================

def test_dropping_a_green_orb_costs_a_life():
    game = make_game()
    place(game, OrbKind.SCORE, y=H + ORB_RADIUS + 1)

    game.update(0, [])

    assert game.lives == SLICER_LIVES - 1
    assert game.orbs == []


def test_orb_on_the_bottom_edge_is_still_in_play():
    game = make_game()
    place(game, OrbKind.SCORE, y=H + ORB_RADIUS)

    game.update(0, [])

    assert game.lives == SLICER_LIVES
    assert len(game.orbs) == 1


@pytest.mark.parametrize("kind", [OrbKind.KILLER, OrbKind.GOLD])
def test_dropping_other_orbs_is_free(kind):
    game = make_game()
    place(game, kind, y=H + 100)

    game.update(0, [])

    assert game.lives == SLICER_LIVES
    assert game.orbs == []


def test_dropping_during_the_buff_is_free():
    game = make_game()
    game.activate_buff(0)
    place(game, OrbKind.SCORE, y=H + 100)

    game.update(0, [])

    assert game.lives == SLICER_LIVES


def test_last_life_lost_is_game_over():
    game = make_game()
    for i in range(SLICER_LIVES):
        place(game, OrbKind.SCORE, y=H + 100, orb_id=i)

    game.update(0, [])

    assert game.lives == 0
    assert game.game_over


def test_reset_starts_over():
    game = make_game()
    place(game, OrbKind.KILLER)
    game.update(0, [tip(400, 300)])
    assert game.game_over

    game.reset(2000)

    assert not game.game_over
    assert (game.score, game.lives, game.orbs) == (0, SLICER_LIVES, [])
    assert game.last_spawn_ms == 2000

# ==================== TRAILS ====================

def test_trails_follow_each_hand_and_are_capped():
    game = make_game()
    for i in range(FINGER_TRAIL_LENGTH + 5):
        game.update(0, [tip(i, 0, hand_index=0), tip(i, 50, hand_index=1)])

    assert len(game.trails[0]) == FINGER_TRAIL_LENGTH
    assert game.trails[0][-1] == (FINGER_TRAIL_LENGTH + 4, 0)
    assert game.trails[0][0] == (5, 0)
    assert game.trails[1][-1] == (FINGER_TRAIL_LENGTH + 4, 50)


def test_trails_clear_when_hands_disappear():
    game = make_game()
    game.update(0, [tip(10, 10)])

    game.update(0, [])

    assert game.trails == {}
