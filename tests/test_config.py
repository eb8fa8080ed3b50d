"""Tests for config — config document parsing, defaults and history."""

import json
from datetime import datetime, time, timedelta

import pytest

from config import (
    Config,
    config_from_dict,
    config_to_dict,
    load_config,
    load_history,
    parse_colour,
    save_config,
    save_history,
)
from errors import ParseError
from schedule import Interval, TaskType, Times

EXAMPLE = {
    "character": "debug_guy",
    "task_timeout": "20m",
    "task_timeout_max": "2h",
    "idle_animation_time_min": "500ms",
    "idle_animation_time_max": "3s",
    "task_animation_duration": "4s",
    "colour": "#00ff80",
    "text_colour": "#101010",
    "notifications": False,
    "sound": "/usr/share/sounds/ding.oga",
    "tasks": [
        {"type": "Drink", "schedule": {"Interval": "2h"}, "key": "d"},
        {"type": "Eat", "schedule": {"Times": ["19:00", "08:00", "12:30"]}},
        {"type": {"Other": "stretch"}, "schedule": {"Interval": "45m"}},
    ],
}


class TestConfigFromDict:
    def test_example(self):
        config = config_from_dict(EXAMPLE)
        assert config.character == "debug_guy"
        assert config.task_timeout == timedelta(minutes=20)
        assert config.task_timeout_max == timedelta(hours=2)
        assert config.idle_animation_time == (0.5, 3.0)
        assert config.task_animation_duration == timedelta(seconds=4)
        assert config.colour == "#00ff80"
        assert config.notifications is False
        assert config.sound == "/usr/share/sounds/ding.oga"

    def test_tasks(self):
        tasks = config_from_dict(EXAMPLE).tasks
        assert [t.type for t in tasks] == [TaskType.parse("Drink"), TaskType.parse("Eat"), TaskType.other("stretch")]
        assert tasks[0].schedule == Interval(timedelta(hours=2))
        assert tasks[0].key == "d"
        assert tasks[1].schedule == Times((time(8, 0), time(12, 30), time(19, 0)))
        assert tasks[1].key is None

    def test_defaults_for_missing_options(self):
        config = config_from_dict({"tasks": []})
        assert config.character == "kitty"
        assert config.task_timeout == timedelta(minutes=30)
        assert config.idle_animation_time == (1.0, 5.0)
        assert config.tasks == []

    def test_default_tasks_when_absent(self):
        assert len(config_from_dict({}).tasks) > 0

    def test_unknown_option_warns(self, caplog):
        config_from_dict({"colour_scheme": "dark"})
        assert "colour_scheme" in caplog.text

    @pytest.mark.parametrize("data", [
        [],
        {"task_timeout": "soon"},
        {"task_timeout_max": "0s"},
        {"idle_animation_time_min": "10s", "idle_animation_time_max": "1s"},
        {"colour": "pink"},
        {"character": 3},
        {"sound": 5},
        {"notifications": "false"},
        {"notifications": 0},
        {"task_timeout": "99999999999w"},
        {"tasks": [{"type": "Eat", "schedule": {"Interval": "1h"}, "key": 1}]},
        {"tasks": [{"type": ["Eat"], "schedule": {"Interval": "1h"}}]},
        {"tasks": {"type": "Eat"}},
        {"tasks": ["Eat"]},
        {"tasks": [{"type": "Eat"}]},
        {"tasks": [{"schedule": {"Interval": "1h"}}]},
        {"tasks": [{"type": "Eat", "schedule": {"Interval": "1h"}, "key": "ab"}]},
        {"tasks": [{"type": "Eat", "schedule": {"Every": "1h"}}]},
    ])
    def test_invalid(self, data):
        with pytest.raises(ParseError):
            config_from_dict(data)

    def test_notifications_must_be_boolean(self):
        assert config_from_dict({"notifications": False}).notifications is False
        with pytest.raises(ParseError, match="notifications"):
            config_from_dict({"notifications": "false"})

    def test_error_names_the_task(self):
        data = {"tasks": [
            {"type": "Eat", "schedule": {"Interval": "1h"}},
            {"type": "Drink", "schedule": {"Interval": "soon"}},
        ]}
        with pytest.raises(ParseError, match=r"tasks\.1"):
            config_from_dict(data)

    def test_range_error_message(self):
        with pytest.raises(ParseError, match="task_timeout_max must be positive"):
            config_from_dict({"task_timeout_max": "0s"})

    def test_round_trip(self):
        config = config_from_dict(EXAMPLE)
        again = config_from_dict(json.loads(json.dumps(config_to_dict(config))))
        assert [(t.type, t.schedule, t.key) for t in again.tasks] == [
            (t.type, t.schedule, t.key) for t in config.tasks
        ]
        assert again.task_timeout == config.task_timeout
        assert again.idle_animation_time == config.idle_animation_time
        assert again.sound == config.sound


class TestLoadConfig:
    def test_missing_file_writes_defaults(self, tmp_path):
        path = tmp_path / "health-pet" / "config.json"
        config = load_config(str(path))
        assert path.exists()
        saved = json.loads(path.read_text())
        assert saved["character"] == config.character
        assert len(saved["tasks"]) == len(config.tasks)

    def test_reads_existing_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(EXAMPLE))
        assert load_config(str(path)).character == "debug_guy"

    def test_save_then_load(self, tmp_path):
        path = str(tmp_path / "config.json")
        save_config(config_from_dict(EXAMPLE), path)
        assert [t.type for t in load_config(path).tasks][2] == TaskType.other("stretch")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ParseError, match="config.json"):
            load_config(str(path))

    def test_invalid_document(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"task_timeout": "later"}))
        with pytest.raises(ParseError):
            load_config(str(path))


class TestParseColour:
    def test_valid(self):
        assert parse_colour("#ff0000") == (1.0, 0.0, 0.0)
        assert parse_colour("000000") == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize("value", ["#fff", "#gggggg", ""])
    def test_invalid(self, value):
        with pytest.raises(ParseError):
            parse_colour(value)


class TestHistory:
    def test_round_trip(self, tmp_path):
        path = str(tmp_path / "state" / "history.json")
        history = {"eat": datetime(2024, 1, 1, 8, 10), "stretch": datetime(2024, 1, 1, 9, 0, 5)}
        save_history(history, path)
        assert load_history(path) == history

    def test_missing_file(self, tmp_path):
        assert load_history(str(tmp_path / "none.json")) == {}

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("[1, 2")
        assert load_history(str(path)) == {}

    def test_bad_entries_skipped(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps({"eat": "2024-01-01T08:00:00", "drink": "yesterday", "sleep": 5}))
        assert load_history(str(path)) == {"eat": datetime(2024, 1, 1, 8, 0)}

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("[]")
        assert load_history(str(path)) == {}


def test_config_default_is_independent():
    a, b = Config(), Config()
    a.tasks.clear()
    assert b.tasks
