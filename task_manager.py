"""Task ledger: owns the configured tasks and classifies them each tick.

A task is *upcoming* until its due instant, *current* for ``task_timeout``
after that, and *past* (overdue) from then on until it is completed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from schedule import Schedule, TaskType, next_instance

if TYPE_CHECKING:
    from config import Config

logger = logging.getLogger(__name__)

DIGIT_KEYS = ("1", "2", "3", "4", "5", "6", "7", "8", "9", "0")


@dataclass
class Task:
    """A recurring task and when it was last done."""

    type: TaskType
    schedule: Schedule
    last_done: datetime = field(default_factory=datetime.now)
    key: str | None = None

    def complete(self, now: datetime) -> None:
        self.last_done = now


@dataclass(frozen=True)
class TaskDue:
    type: TaskType
    when: datetime


@dataclass
class Tasks:
    past: list[TaskDue] = field(default_factory=list)
    current: list[TaskDue] = field(default_factory=list)
    upcoming: list[TaskDue] = field(default_factory=list)

    @property
    def due(self) -> list[TaskDue]:
        """Overdue tasks first, then the ones that are due right now."""
        return self.past + self.current


class TaskManager:
    """Owns the task list handed over by the configuration."""

    def __init__(self, config: Config, task_timeout: timedelta | None = None) -> None:
        # Take the list; the config keeps an empty one
        self._tasks: list[Task] = config.tasks
        config.tasks = []
        self.task_timeout = task_timeout if task_timeout is not None else config.task_timeout

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def classify(self, now: datetime) -> Tasks:
        """Split the tasks into past, current and upcoming relative to ``now``.

        Due instants are computed from each task's last completion, so the
        result only depends on the ledger and ``now``.  Raises ScheduleError
        if any schedule cannot be resolved; no partial result is returned.
        """
        tasks = Tasks()
        for task in self._tasks:
            due = TaskDue(task.type, next_instance(task.schedule, task.last_done))
            if due.when > now:
                tasks.upcoming.append(due)
            elif now - due.when < self.task_timeout:
                tasks.current.append(due)
            else:
                tasks.past.append(due)

        for bucket in (tasks.past, tasks.current, tasks.upcoming):
            bucket.sort(key=lambda d: d.when)
        return tasks

    def complete(self, task_type: TaskType, now: datetime) -> int:
        """Mark every task of ``task_type`` as done at ``now``.

        Returns how many tasks were reset.
        """
        count = 0
        for task in self._tasks:
            if task.type == task_type:
                task.complete(now)
                count += 1
        if count:
            logger.info("Completed %s (%d task(s))", task_type.name, count)
        else:
            logger.warning("No task of type %s to complete", task_type.name)
        return count

    def keybinds(self) -> dict[TaskType, str]:
        return {task.type: task.key for task in self._tasks if task.key}

    def history(self) -> dict[str, datetime]:
        """Latest completion per task type, keyed by slug."""
        result: dict[str, datetime] = {}
        for task in self._tasks:
            slug = task.type.slug
            if slug not in result or task.last_done > result[slug]:
                result[slug] = task.last_done
        return result

    def restore_history(self, history: dict[str, datetime]) -> None:
        for task in self._tasks:
            last_done = history.get(task.type.slug)
            if last_done is not None:
                task.last_done = last_done


def assign_keys(
    dues: Iterable[TaskDue],
    keybinds: dict[TaskType, str] | None = None,
    limit: int | None = None,
) -> list[tuple[str | None, TaskDue]]:
    """Pair each due task with the key that completes it.

    Only the first ``limit`` tasks are kept, so every returned pair can be
    shown.  Explicit keybinds win; the remaining tasks take the next unused
    digit in list order.  Tasks left over once the digits run out get
    ``None``.
    """
    keybinds = keybinds or {}
    dues = list(dues)
    if limit is not None:
        dues = dues[:max(limit, 0)]
    taken = {keybinds[d.type] for d in dues if d.type in keybinds}
    free = [k for k in DIGIT_KEYS if k not in taken]

    assigned: list[tuple[str | None, TaskDue]] = []
    by_type: dict[TaskType, str | None] = {}
    for due in dues:
        if due.type in keybinds:
            key = keybinds[due.type]
        elif due.type in by_type:
            key = by_type[due.type]
        else:
            key = free.pop(0) if free else None
        by_type[due.type] = key
        assigned.append((key, due))
    return assigned


def newly_overdue(previous: set[TaskType], tasks: Tasks) -> list[TaskDue]:
    """Past tasks whose type was not overdue on the previous tick."""
    seen: set[TaskType] = set()
    fresh = []
    for due in tasks.past:
        if due.type not in previous and due.type not in seen:
            fresh.append(due)
        seen.add(due.type)
    return fresh
