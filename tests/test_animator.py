"""Tests for animator — companion transition priorities and frame timing."""

import random
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from animations import AnimationKey, load
from animator import Companion, RoomBounds
from schedule import TaskType
from task_manager import TaskDue

EAT = TaskType.parse("Eat")
DRINK = TaskType.parse("Drink")
ROOM = RoomBounds(left=-20, right=20)
WHEN = datetime(2024, 1, 1, 12, 0)


def _quiet_rng():
    """An RNG whose idle reroll never changes the animation."""
    rng = MagicMock(spec=random.Random)
    rng.uniform.return_value = 1000.0
    rng.random.return_value = 0.9
    return rng


@pytest.fixture
def companion(library):
    return Companion(library, idle_animation_time=(1.0, 2.0), clock=lambda: 0.0, rng=_quiet_rng())


class TestBoundary:
    def test_left_of_room_walks_right(self, companion):
        companion.pos = (ROOM.left - 1, 0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.walk_right()

    def test_past_right_edge_walks_left(self, companion):
        width = companion.animations.max_bounds[0]
        companion.pos = (ROOM.right - width + 1, 0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.walk_left()

    def test_touching_right_edge_is_inside(self, companion):
        width = companion.animations.max_bounds[0]
        companion.pos = (ROOM.right - width, 0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.idle()

    def test_at_left_edge_is_inside(self, companion):
        companion.pos = (ROOM.left, 0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.idle()

    def test_walks_back_into_room(self, companion):
        companion.pos = (ROOM.left - 2, 0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.pos == (ROOM.left - 2, 0)
        companion.update(1.0, None, ROOM, now=1.1)
        companion.update(1.0, None, ROOM, now=1.2)
        assert companion.pos == (ROOM.left, 0)

    def test_boundary_beats_task_and_sadness(self, companion):
        companion.pos = (ROOM.left - 1, 0)
        companion.update(0.0, EAT, ROOM, [TaskDue(EAT, WHEN)], now=1.0)
        assert companion.key == AnimationKey.walk_right()


class TestTaskAndMood:
    def test_ongoing_task(self, companion):
        companion.update(1.0, EAT, ROOM, now=1.0)
        assert companion.key == AnimationKey.for_task(EAT)
        # no task/eat frames, so the general task animation plays
        assert companion.current_frame().lines == ["\\o/", " | "]

    def test_task_beats_sadness(self, companion):
        companion.update(0.0, DRINK, ROOM, [TaskDue(EAT, WHEN)], now=1.0)
        assert companion.key == AnimationKey.for_task(DRINK)

    @pytest.mark.parametrize("happiness, level", [(0.59, 0), (0.5, 0), (0.3, 1), (0.0, 1)])
    def test_sadness_level(self, companion, happiness, level):
        companion.update(happiness, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.sad(level)

    def test_sadness_level_clamped(self, companion):
        assert companion.sadness_level(-5.0) == companion.animations.max_sadness
        assert companion.sadness_level(0.59) == 0

    def test_content_companion_is_not_sad(self, companion):
        companion.update(0.6, None, ROOM, [TaskDue(EAT, WHEN)], now=1.0)
        assert companion.key == AnimationKey.idle()

    def test_prefers_want_animation(self, companion):
        companion.update(0.3, None, ROOM, [TaskDue(DRINK, WHEN), TaskDue(EAT, WHEN)], now=1.0)
        assert companion.key == AnimationKey.want(EAT)

    def test_sad_without_want_animation(self, companion):
        companion.update(0.3, None, ROOM, [TaskDue(DRINK, WHEN)], now=1.0)
        assert companion.key == AnimationKey.sad(1)

    def test_only_idle_and_sad_library(self):
        lib = load("animation idle\nframe 100ms\n:)\nanimation sad/0\nframe 100ms\n:(\n")
        companion = Companion(lib, clock=lambda: 0.0, rng=_quiet_rng())
        companion.update(0.3, None, ROOM, [TaskDue(EAT, WHEN)], now=1.0)
        assert companion.key == AnimationKey.sad(0)
        assert companion.current_frame().lines == [":("]

    def test_finished_task_returns_to_idle(self, companion):
        # consume the idle reroll so its deadline is far away
        companion.update(1.0, None, ROOM, now=0.5)
        companion.update(1.0, EAT, ROOM, now=1.0)
        companion.update(1.0, None, ROOM, now=1.1)
        assert companion.key == AnimationKey.idle()

    def test_idle_reroll_outranks_task_reversion(self, companion):
        companion.update(1.0, EAT, ROOM, now=1.0)
        # reroll is due and picks "no change", so the task animation holds
        companion.update(1.0, None, ROOM, now=1.1)
        assert companion.key == AnimationKey.for_task(EAT)


class TestIdleReroll:
    def _companion(self, library, *rolls):
        rng = MagicMock(spec=random.Random)
        rng.uniform.return_value = 1.5
        rng.random.side_effect = list(rolls)
        return Companion(library, idle_animation_time=(1.0, 2.0), clock=lambda: 0.0, rng=rng), rng

    def test_walk_left(self, library):
        companion, _ = self._companion(library, 0.1, 0.2)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.walk_left()

    def test_walk_right(self, library):
        companion, _ = self._companion(library, 0.1, 0.7)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.walk_right()

    def test_idle(self, library):
        companion, _ = self._companion(library, 0.5, 0.2)
        companion.set_animation(AnimationKey.walk_left(), now=0.0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.idle()

    def test_no_change(self, library):
        companion, _ = self._companion(library, 0.5, 0.7)
        companion.set_animation(AnimationKey.walk_right(), now=0.0)
        companion.update(1.0, None, ROOM, now=1.0)
        assert companion.key == AnimationKey.walk_right()

    def test_waits_for_next_deadline(self, library):
        companion, rng = self._companion(library, 0.5, 0.7)
        companion.update(1.0, None, ROOM, now=1.0)
        rng.uniform.assert_called_once_with(1.0, 2.0)
        companion.update(1.0, None, ROOM, now=2.4)
        assert rng.random.call_count == 2

    def test_not_rerolled_while_sad(self, library):
        companion, rng = self._companion(library)
        companion.update(0.1, None, ROOM, now=1.0)
        rng.uniform.assert_not_called()

    def test_rejects_empty_range(self, library):
        with pytest.raises(ValueError):
            Companion(library, idle_animation_time=(5.0, 1.0))

    def test_real_rng_stays_in_allowed_keys(self, library):
        companion = Companion(library, idle_animation_time=(0.0, 0.0), clock=lambda: 0.0, rng=random.Random(7))
        allowed = {AnimationKey.idle(), AnimationKey.walk_left(), AnimationKey.walk_right()}
        seen = set()
        for step in range(1, 300):
            companion.pos = (0, 0)
            companion.update(1.0, None, ROOM, now=step * 0.01)
            seen.add(companion.key)
        assert seen <= allowed
        assert len(seen) == 3


class TestFrames:
    def test_first_frame_until_next_tick(self, companion):
        companion.update(1.0, None, ROOM, now=0.0)
        assert companion.frame == 0

    def test_advances_and_wraps(self, companion):
        companion.update(1.0, None, ROOM, now=0.01)
        assert companion.frame == 1
        companion.update(1.0, None, ROOM, now=0.05)
        assert companion.frame == 1
        companion.update(1.0, None, ROOM, now=0.12)
        assert companion.frame == 0
        assert companion.current_frame().lines == [" o ", "/|\\"]

    def test_switch_resets_frame(self, companion):
        companion.update(1.0, None, ROOM, now=0.01)
        assert companion.frame == 1
        companion.update(1.0, EAT, ROOM, now=0.02)
        assert companion.key == AnimationKey.for_task(EAT)
        assert companion.frame == 0

    def test_same_key_keeps_frame(self, companion):
        companion.update(1.0, None, ROOM, now=0.01)
        assert companion.set_animation(AnimationKey.idle()) is False
        assert companion.frame == 1

    def test_walking_moves_one_cell_per_frame(self, companion):
        companion.set_animation(AnimationKey.walk_left(), now=0.0)
        companion.update(1.0, None, ROOM, now=0.01)
        assert companion.pos == (-1, 0)
        companion.update(1.0, None, ROOM, now=0.03)
        assert companion.pos == (-1, 0)
        companion.update(1.0, None, ROOM, now=0.07)
        assert companion.pos == (-2, 0)

    def test_walking_right(self, companion):
        companion.set_animation(AnimationKey.walk_right(), now=0.0)
        companion.update(1.0, None, ROOM, now=0.01)
        assert companion.pos == (1, 0)

    def test_other_animations_stay_put(self, companion):
        companion.update(0.0, None, ROOM, now=0.01)
        companion.update(0.0, None, ROOM, now=1.0)
        assert companion.pos == (0, 0)
