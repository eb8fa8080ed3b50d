"""Task types and recurrence schedules.

A schedule answers one question: given the moment a task was last done,
when is it due next?  ``Times`` schedules recur at fixed times of day,
``Interval`` schedules recur a fixed duration after the last completion.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo

from errors import ParseError, ScheduleError


class TaskKind(enum.Enum):
    EAT = "Eat"
    DRINK = "Drink"
    BRUSH_TEETH = "Brush Teeth"
    SHOWER = "Shower"
    EYES_REST = "Eyes Rest"
    TAKE_MEDS = "Take Meds"
    SLEEP = "Sleep"
    BATHROOM = "Bathroom"
    OTHER = "Other"


_MESSAGES: dict[TaskKind, str] = {
    TaskKind.EAT: "I'm hungry!",
    TaskKind.DRINK: "I'm thirsty!",
    TaskKind.BRUSH_TEETH: "My breath smells!",
    TaskKind.SHOWER: "I'm stinky!",
    TaskKind.EYES_REST: "My eyes are tired!",
    TaskKind.TAKE_MEDS: "I don't feel good >.<",
    TaskKind.SLEEP: "I'm eepy!",
    TaskKind.BATHROOM: "I have to go!",
}


@dataclass(frozen=True)
class TaskType:
    """A built-in task category, or ``Other`` with a free-form description.

    ``TaskType.general()`` (``Other`` with an empty description) stands for
    "any task" in animation lookups.
    """

    kind: TaskKind
    description: str = ""

    @classmethod
    def other(cls, description: str) -> TaskType:
        return cls(TaskKind.OTHER, description)

    @classmethod
    def general(cls) -> TaskType:
        return cls(TaskKind.OTHER, "")

    @classmethod
    def builtins(cls) -> list[TaskType]:
        return [cls(kind) for kind in TaskKind if kind is not TaskKind.OTHER]

    @classmethod
    def parse(cls, name: str) -> TaskType:
        """Match a config name ("Brush Teeth") or slug ("brush_teeth").

        Anything that is not a built-in category becomes ``Other(name)``.
        """
        key = name.strip().lower().replace(" ", "_")
        for task_type in cls.builtins():
            if key == task_type.slug:
                return task_type
        return cls.other(name)

    @property
    def is_general(self) -> bool:
        return self.kind is TaskKind.OTHER and not self.description

    @property
    def slug(self) -> str:
        if self.kind is TaskKind.OTHER:
            return self.description.strip().lower().replace(" ", "_") or "general"
        return self.kind.value.lower().replace(" ", "_")

    @property
    def name(self) -> str:
        if self.kind is TaskKind.OTHER:
            return self.description or "Task"
        return self.kind.value

    @property
    def message(self) -> str:
        if self.kind is TaskKind.OTHER:
            return f"I need to {self.description}"
        return _MESSAGES[self.kind]

    def to_json(self) -> str | dict[str, str]:
        if self.kind is TaskKind.OTHER:
            return {"Other": self.description}
        return self.kind.value

    @classmethod
    def from_json(cls, value: object) -> TaskType:
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, dict) and set(value) == {"Other"} and isinstance(value["Other"], str):
            return cls.other(value["Other"])
        raise ParseError(f"Invalid task type: {value!r}")

    def __str__(self) -> str:
        return self.message


# ----------------------------------------------------------------------
# Durations and times of day
# ----------------------------------------------------------------------

_UNITS: dict[str, timedelta] = {
    "ms": timedelta(milliseconds=1),
    "msec": timedelta(milliseconds=1),
    "s": timedelta(seconds=1),
    "sec": timedelta(seconds=1),
    "secs": timedelta(seconds=1),
    "second": timedelta(seconds=1),
    "seconds": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "mins": timedelta(minutes=1),
    "minute": timedelta(minutes=1),
    "minutes": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "hrs": timedelta(hours=1),
    "hour": timedelta(hours=1),
    "hours": timedelta(hours=1),
    "d": timedelta(days=1),
    "day": timedelta(days=1),
    "days": timedelta(days=1),
    "w": timedelta(weeks=1),
    "week": timedelta(weeks=1),
    "weeks": timedelta(weeks=1),
}

_DURATION_PART = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]+)")

# Largest first, for formatting
_FORMAT_UNITS = (
    ("w", timedelta(weeks=1)),
    ("d", timedelta(days=1)),
    ("h", timedelta(hours=1)),
    ("m", timedelta(minutes=1)),
    ("s", timedelta(seconds=1)),
    ("ms", timedelta(milliseconds=1)),
)


def parse_duration(text: str) -> timedelta:
    """Parse a human-readable duration such as ``"2h"`` or ``"1h 30m"``."""
    if not isinstance(text, str) or not text.strip():
        raise ParseError(f"Invalid duration: {text!r}")
    total = timedelta()
    pos = 0
    stripped = text.strip()
    while pos < len(stripped):
        match = _DURATION_PART.match(stripped, pos)
        if match is None:
            raise ParseError(f"Invalid duration: {text!r}")
        amount, unit = match.groups()
        unit_delta = _UNITS.get(unit.lower())
        if unit_delta is None:
            raise ParseError(f"Unknown duration unit {unit!r} in {text!r}")
        try:
            total += unit_delta * float(amount)
        except (OverflowError, ValueError):
            raise ParseError(f"Duration out of range: {text!r}") from None
        pos = match.end()
    return total


def format_duration(delta: timedelta) -> str:
    """Format a duration the way ``parse_duration`` reads it back."""
    if delta < timedelta():
        raise ValueError(f"Negative duration: {delta}")
    if not delta:
        return "0s"
    # Milliseconds are the finest unit; round up so nonzero stays nonzero
    millis = -(-delta // timedelta(microseconds=1000))
    parts = []
    remaining = timedelta(milliseconds=millis)
    for suffix, unit in _FORMAT_UNITS:
        count = remaining // unit
        if count:
            parts.append(f"{count}{suffix}")
            remaining -= unit * count
    return "".join(parts)


def parse_time_of_day(text: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS``."""
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text.strip(), fmt).time()
        except (ValueError, AttributeError):
            continue
    raise ParseError(f"Invalid time of day: {text!r}")


def format_time_of_day(t: time) -> str:
    if t.second:
        return t.strftime("%H:%M:%S")
    return t.strftime("%H:%M")


# ----------------------------------------------------------------------
# Schedules
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Times:
    """Recur at each listed time of day."""

    times: tuple[time, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "times", tuple(sorted(set(self.times))))


@dataclass(frozen=True)
class Interval:
    """Recur a fixed duration after the last completion."""

    interval: timedelta


Schedule = Times | Interval


def _wall_clock(day: date, t: time, tz: tzinfo | None) -> datetime | None:
    """Build a local wall-clock instant, or None if it is ambiguous or skipped."""
    naive = datetime.combine(day, t)
    if tz is None:
        early = naive.replace(fold=0).astimezone()
        late = naive.replace(fold=1).astimezone()
    else:
        early = naive.replace(tzinfo=tz, fold=0)
        late = naive.replace(tzinfo=tz, fold=1)
    if early.utcoffset() != late.utcoffset():
        return None
    return naive.replace(tzinfo=tz)


def _next_midnight(reference: datetime) -> datetime:
    return datetime.combine(reference.date() + timedelta(days=1), time(), tzinfo=reference.tzinfo)


def next_instance(schedule: Schedule, reference: datetime) -> datetime:
    """Return the first due instant after ``reference``.

    For ``Times`` this is the next listed time of day strictly after the
    reference's time of day, rolling over to the earliest time tomorrow.
    Wall-clock instants that a DST shift skips or repeats resolve to the
    following midnight instead.
    """
    if isinstance(schedule, Interval):
        return reference + schedule.interval

    if not schedule.times:
        raise ScheduleError("No times in schedule!")

    now_time = reference.time()
    later = [t for t in schedule.times if t > now_time]
    if later:
        day, t = reference.date(), later[0]
    else:
        day, t = reference.date() + timedelta(days=1), schedule.times[0]

    due = _wall_clock(day, t, reference.tzinfo)
    if due is None:
        return _next_midnight(reference)
    return due


def schedule_to_json(schedule: Schedule) -> dict[str, object]:
    if isinstance(schedule, Interval):
        return {"Interval": format_duration(schedule.interval)}
    return {"Times": [format_time_of_day(t) for t in schedule.times]}


def schedule_from_json(value: object) -> Schedule:
    if not isinstance(value, dict) or len(value) != 1:
        raise ParseError(f"Invalid schedule: {value!r}")
    (tag, body), = value.items()
    if tag == "Interval":
        interval = parse_duration(body)
        if interval <= timedelta():
            raise ParseError(f"Interval must be positive: {body!r}")
        return Interval(interval)
    if tag == "Times":
        if not isinstance(body, list):
            raise ParseError(f"Times must be a list: {body!r}")
        return Times(tuple(parse_time_of_day(t) for t in body))
    raise ParseError(f"Unknown schedule kind: {tag!r}")
