"""Animation state machine for the Health Pet companion.

Picks which animation the companion plays each tick, advances its frames
and walks it around the room.  Transition rules are checked in priority
order and the first match wins:

1. wall collision turns the companion around
2. a task the user just completed plays its task animation
3. low happiness plays a want or sad animation
4. the idle timer rerolls between walking, idling and doing nothing
5. a finished task animation returns to idle
"""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from animations import AnimationFrame, AnimationKey, AnimationLibrary, Kind
from schedule import TaskType
from task_manager import TaskDue

logger = logging.getLogger(__name__)

SAD_THRESHOLD = 0.6
DEFAULT_IDLE_TIME = (1.0, 5.0)


@dataclass(frozen=True)
class RoomBounds:
    """Half-open column range the companion may occupy, relative to the centre."""

    left: int
    right: int


class Companion:
    """Tracks the current animation, frame cursor, timers and position.

    Times are seconds on a monotonic clock; ``clock`` and ``rng`` can be
    replaced for deterministic behaviour.
    """

    def __init__(
        self,
        animations: AnimationLibrary,
        idle_animation_time: tuple[float, float] = DEFAULT_IDLE_TIME,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        lo, hi = idle_animation_time
        if lo > hi:
            raise ValueError(f"Idle animation time range is empty: {lo}..{hi}")
        self.animations = animations
        self.idle_animation_time = (lo, hi)
        self._clock = clock
        self._rng = rng or random.Random()

        now = clock()
        self._key = AnimationKey.idle()
        self._frame = 0
        self._next_frame_time = now
        self._idle_animation_change = now
        self.pos: tuple[int, int] = (0, 0)

    @property
    def key(self) -> AnimationKey:
        return self._key

    @property
    def frame(self) -> int:
        return self._frame

    def set_animation(self, key: AnimationKey, now: float | None = None) -> bool:
        """Switch to ``key``, restarting from its first frame.

        No-op if already playing ``key``.  Returns whether it changed.
        """
        if key == self._key:
            return False
        logger.debug("Animation %s -> %s", self._key, key)
        self._key = key
        self._frame = 0
        self._next_frame_time = self._clock() if now is None else now
        return True

    def sadness_level(self, happiness: float) -> int:
        max_sadness = self.animations.max_sadness
        level = math.floor((1.0 - happiness / SAD_THRESHOLD) * (max_sadness + 1))
        return min(max(level, 0), max_sadness)

    def _choose(
        self,
        happiness: float,
        ongoing_task: TaskType | None,
        room: RoomBounds,
        wants: Sequence[TaskDue],
        now: float,
    ) -> AnimationKey | None:
        x = self.pos[0]
        if x < room.left:
            return AnimationKey.walk_right()
        if x + self.animations.max_bounds[0] > room.right:
            return AnimationKey.walk_left()

        if ongoing_task is not None:
            return AnimationKey.for_task(ongoing_task)

        if happiness < SAD_THRESHOLD:
            for due in wants:
                want = AnimationKey.want(due.type)
                if want in self.animations:
                    return want
            return AnimationKey.sad(self.sadness_level(happiness))

        if self._idle_animation_change < now:
            self._idle_animation_change = now + self._rng.uniform(*self.idle_animation_time)
            if self._rng.random() < 1 / 3:
                if self._rng.random() < 0.5:
                    return AnimationKey.walk_left()
                return AnimationKey.walk_right()
            if self._rng.random() < 0.5:
                return AnimationKey.idle()
            return None

        if self._key.kind is Kind.TASK:
            return AnimationKey.idle()
        return None

    def update(
        self,
        happiness: float,
        ongoing_task: TaskType | None,
        room: RoomBounds,
        wants: Sequence[TaskDue] = (),
        now: float | None = None,
    ) -> None:
        """Run one tick: pick the animation, then advance its frames."""
        if now is None:
            now = self._clock()

        new_key = self._choose(happiness, ongoing_task, room, wants, now)
        if new_key is not None:
            self.set_animation(new_key, now)

        frames = self.animations.resolve(self._key)
        if now > self._next_frame_time:
            self._frame += 1
            if self._frame >= len(frames):
                self._frame = 0
            self._next_frame_time = now + frames[self._frame].duration
            if self._key.is_walking:
                step = -1 if self._key.kind is Kind.WALK_LEFT else 1
                self.pos = (self.pos[0] + step, self.pos[1])

    def current_frame(self) -> AnimationFrame:
        frames = self.animations.resolve(self._key)
        return frames[self._frame % len(frames)]
