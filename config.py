"""Configuration and completion history for Health Pet.

The config file is JSON under ``$XDG_CONFIG_HOME/health-pet/``; it is
written with defaults the first time the pet starts.  Completion times are
kept separately under ``$XDG_STATE_HOME/health-pet/`` so a restart does not
forget what was already done today.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, time, timedelta
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainValidator,
    StrictBool,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from errors import ParseError
from schedule import (
    Interval,
    Schedule,
    TaskType,
    Times,
    format_duration,
    parse_duration,
    schedule_from_json,
    schedule_to_json,
)
from task_manager import Task

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")), "health-pet")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")
STATE_DIR = os.path.join(os.environ.get("XDG_STATE_HOME", os.path.expanduser("~/.local/state")), "health-pet")
HISTORY_FILE = os.path.join(STATE_DIR, "history.json")

_DURATION_OPTIONS = (
    "task_timeout",
    "task_timeout_max",
    "idle_animation_time_min",
    "idle_animation_time_max",
    "task_animation_duration",
)


def default_tasks() -> list[Task]:
    return [
        Task(TaskType.parse("Drink"), Interval(timedelta(hours=2))),
        Task(TaskType.parse("Eat"), Times((time(8, 0), time(12, 30), time(19, 0)))),
        Task(TaskType.parse("Eyes Rest"), Interval(timedelta(minutes=45))),
        Task(TaskType.parse("Take Meds"), Times((time(9, 0),))),
        Task(TaskType.parse("Sleep"), Times((time(23, 0),))),
    ]


def parse_colour(value: str) -> tuple[float, float, float]:
    """``#rrggbb`` to an (r, g, b) triple in [0, 1]."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ParseError(f"Invalid colour: {value!r}")
    try:
        return tuple(int(text[i:i + 2], 16) / 255 for i in (0, 2, 4))
    except ValueError:
        raise ParseError(f"Invalid colour: {value!r}") from None


def _duration(value: object) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return parse_duration(value)


def _colour(value: str) -> str:
    parse_colour(value)
    return value


Duration = Annotated[timedelta, BeforeValidator(_duration)]
Colour = Annotated[StrictStr, AfterValidator(_colour)]


class TaskEntry(BaseModel):
    """One element of the ``tasks`` list in the config file."""

    type: TaskType
    schedule: Schedule
    key: StrictStr | None = None

    @field_validator("type", mode="plain")
    @classmethod
    def _parse_type(cls, value: object) -> TaskType:
        if isinstance(value, TaskType):
            return value
        return TaskType.from_json(value)

    @field_validator("schedule", mode="plain")
    @classmethod
    def _parse_schedule(cls, value: object) -> Schedule:
        if isinstance(value, (Times, Interval)):
            return value
        return schedule_from_json(value)

    @field_validator("key")
    @classmethod
    def _single_character(cls, value: str | None) -> str | None:
        if value is not None and len(value) != 1:
            raise ValueError(f"key must be a single character, got {value!r}")
        return value

    def to_task(self) -> Task:
        return Task(self.type, self.schedule, key=self.key)


def _task(value: object) -> Task:
    if isinstance(value, Task):
        return value
    return TaskEntry.model_validate(value).to_task()


class Config(BaseModel):
    """Runtime options plus the task list.

    ``tasks`` is handed over to the TaskManager at startup, which leaves
    an empty list behind.
    """

    model_config = ConfigDict(extra="ignore")

    character: StrictStr = "kitty"
    task_timeout: Duration = timedelta(minutes=30)
    task_timeout_max: Duration = timedelta(hours=4)
    idle_animation_time_min: Duration = timedelta(seconds=1)
    idle_animation_time_max: Duration = timedelta(seconds=5)
    task_animation_duration: Duration = timedelta(seconds=3)
    colour: Colour = "#f5a9b8"
    text_colour: Colour = "#ffffff"
    notifications: StrictBool = True
    sound: StrictStr | None = None
    tasks: list[Annotated[Task, PlainValidator(_task)]] = Field(default_factory=default_tasks)

    @model_validator(mode="after")
    def _check_ranges(self) -> Config:
        if self.task_timeout_max <= timedelta():
            raise ValueError("task_timeout_max must be positive")
        if self.idle_animation_time_min > self.idle_animation_time_max:
            raise ValueError("idle_animation_time_min is larger than idle_animation_time_max")
        return self

    @property
    def idle_animation_time(self) -> tuple[float, float]:
        return (
            self.idle_animation_time_min.total_seconds(),
            self.idle_animation_time_max.total_seconds(),
        )


def _task_to_json(task: Task) -> dict:
    entry = {"type": task.type.to_json(), "schedule": schedule_to_json(task.schedule)}
    if task.key:
        entry["key"] = task.key
    return entry


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        where = ".".join(str(part) for part in error["loc"])
        parts.append(f"{where}: {error['msg']}" if where else error["msg"])
    return "; ".join(parts)


def config_from_dict(data: dict) -> Config:
    if not isinstance(data, dict):
        raise ParseError("Config must be a JSON object")
    for name in data:
        if name not in Config.model_fields:
            logger.warning("Ignoring unknown config option %r", name)
    try:
        return Config.model_validate(data)
    except ValidationError as exc:
        raise ParseError(_describe(exc)) from None


def config_to_dict(config: Config) -> dict:
    data: dict = {"character": config.character}
    for name in _DURATION_OPTIONS:
        data[name] = format_duration(getattr(config, name))
    data["colour"] = config.colour
    data["text_colour"] = config.text_colour
    data["notifications"] = config.notifications
    data["sound"] = config.sound
    data["tasks"] = [_task_to_json(task) for task in config.tasks]
    return data


def load_config(path: str = CONFIG_FILE) -> Config:
    """Read the config file, creating it with defaults if it is missing.

    Raises ParseError if the file exists but is not a valid config.
    """
    if not os.path.exists(path):
        config = Config()
        try:
            save_config(config, path)
            logger.info("Wrote default config to %s", path)
        except OSError as exc:
            logger.warning("Could not write default config to %s: %s", path, exc)
        return config

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ParseError(f"{path}: {exc}") from exc
    except OSError as exc:
        raise ParseError(f"Could not read {path}: {exc}") from exc
    try:
        return config_from_dict(data)
    except ParseError as exc:
        raise ParseError(f"{path}: {exc}") from exc


def save_config(config: Config, path: str = CONFIG_FILE) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config_to_dict(config), f, indent=2)


def load_history(path: str = HISTORY_FILE) -> dict[str, datetime]:
    """Last completion per task slug; empty if there is no usable file."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable history file %s: %s", path, exc)
        return {}

    history = {}
    if not isinstance(raw, dict):
        logger.warning("Ignoring malformed history file %s", path)
        return history
    for slug, stamp in raw.items():
        try:
            history[slug] = datetime.fromisoformat(stamp)
        except (TypeError, ValueError):
            logger.warning("Ignoring bad history entry %r: %r", slug, stamp)
    return history


def save_history(history: dict[str, datetime], path: str = HISTORY_FILE) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump({slug: when.isoformat() for slug, when in history.items()}, f, indent=2)
    os.replace(tmp, path)
