"""Happiness score derived from overdue tasks.

Each overdue task costs ``sqrt(overdue_beyond_timeout / task_timeout_max)``;
the summed penalty is clamped to [0, 1] and subtracted from 1.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Iterable

from task_manager import TaskDue


def score(
    past: Iterable[TaskDue],
    now: datetime,
    task_timeout: timedelta,
    task_timeout_max: timedelta,
) -> float:
    timeout = task_timeout.total_seconds()
    timeout_max = task_timeout_max.total_seconds()
    penalty = 0.0
    for due in past:
        overdue = max(0.0, (now - due.when).total_seconds() - timeout)
        penalty += math.sqrt(overdue / timeout_max)
    return 1.0 - min(max(penalty, 0.0), 1.0)


def mood(happiness: float) -> str:
    if happiness <= 0.1:
        return "very sad"
    if happiness <= 0.4:
        return "sad"
    if happiness <= 0.6:
        return "neutral"
    if happiness <= 0.9:
        return "happy"
    return "very happy"
