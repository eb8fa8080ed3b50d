"""Animation library: symbolic animation keys mapped to text frames.

Source format, one file per character::

    animation idle
    frame 500ms
     /\\_/\\
    ( o.o )
    frame 250ms
     /\\_/\\
    ( -.- )

Every line after a ``frame`` header up to the next header is a row of
that frame, verbatim.  Keys missing from a file fall back along a fixed
chain that always ends at ``idle``.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field

from errors import AnimationError, ParseError
from schedule import TaskType

logger = logging.getLogger(__name__)

ANIMATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "animations")
CHARACTERS = ("kitty", "debug_guy")

# Longest chain the fallback table can produce is Sad(1) -> Sad(0) -> Idle
MAX_FALLBACK_HOPS = 3
MAX_SAD_LEVEL = 1


class Kind(enum.Enum):
    IDLE = "idle"
    WALK = "walk"
    WALK_LEFT = "walk/left"
    WALK_RIGHT = "walk/right"
    SAD = "sad"
    WANT = "want"
    TASK = "task"


@dataclass(frozen=True)
class AnimationKey:
    kind: Kind
    level: int = 0
    task: TaskType | None = None

    @classmethod
    def idle(cls) -> AnimationKey:
        return cls(Kind.IDLE)

    @classmethod
    def walk(cls) -> AnimationKey:
        return cls(Kind.WALK)

    @classmethod
    def walk_left(cls) -> AnimationKey:
        return cls(Kind.WALK_LEFT)

    @classmethod
    def walk_right(cls) -> AnimationKey:
        return cls(Kind.WALK_RIGHT)

    @classmethod
    def sad(cls, level: int) -> AnimationKey:
        if level < 0:
            raise ValueError(f"Sadness level must be non-negative: {level}")
        return cls(Kind.SAD, level=level)

    @classmethod
    def want(cls, task: TaskType) -> AnimationKey:
        return cls(Kind.WANT, task=task)

    @classmethod
    def for_task(cls, task: TaskType) -> AnimationKey:
        return cls(Kind.TASK, task=task)

    @classmethod
    def parse(cls, text: str) -> AnimationKey:
        name = text.strip().lower()
        for kind in (Kind.IDLE, Kind.WALK, Kind.WALK_LEFT, Kind.WALK_RIGHT):
            if name == kind.value:
                return cls(kind)

        prefix, _, rest = name.partition("/")
        if prefix == "sad" and rest.isdigit() and int(rest) <= MAX_SAD_LEVEL:
            return cls.sad(int(rest))
        if prefix == "task" and rest == "general":
            return cls.for_task(TaskType.general())
        if prefix in ("want", "task"):
            for task in TaskType.builtins():
                if rest == task.slug:
                    return cls.want(task) if prefix == "want" else cls.for_task(task)
        raise ParseError(f"Unknown animation: {text.strip()!r}")

    @property
    def is_walking(self) -> bool:
        return self.kind in (Kind.WALK_LEFT, Kind.WALK_RIGHT)

    def fallback(self) -> AnimationKey | None:
        """Next key to try when this one has no frames; None for idle."""
        if self.is_walking:
            return AnimationKey.walk()
        if self.kind is Kind.SAD and self.level > 0:
            return AnimationKey.sad(self.level - 1)
        if self.kind is Kind.WANT and not self.task.is_general:
            return AnimationKey.sad(0)
        if self.kind is Kind.TASK and not self.task.is_general:
            return AnimationKey.for_task(TaskType.general())
        if self.kind is Kind.IDLE:
            return None
        return AnimationKey.idle()

    def __str__(self) -> str:
        if self.kind is Kind.SAD:
            return f"sad/{self.level}"
        if self.kind in (Kind.WANT, Kind.TASK):
            return f"{self.kind.value}/{self.task.slug}"
        return self.kind.value


@dataclass
class AnimationFrame:
    duration: float  # seconds
    lines: list[str] = field(default_factory=list)


class AnimationLibrary:
    """Frames per animation key, plus metadata derived at load time."""

    def __init__(self, anims: dict[AnimationKey, list[AnimationFrame]]) -> None:
        self._anims = anims
        self.max_sadness: int = max(
            (key.level for key in anims if key.kind is Kind.SAD), default=0
        )
        frames = [frame for frame_list in anims.values() for frame in frame_list]
        self.max_bounds: tuple[int, int] = (
            max((len(line) for frame in frames for line in frame.lines), default=1),
            max((len(frame.lines) for frame in frames), default=1),
        )

    def __contains__(self, key: AnimationKey) -> bool:
        return key in self._anims

    def __len__(self) -> int:
        return len(self._anims)

    def keys(self) -> list[AnimationKey]:
        return list(self._anims)

    def get_raw(self, key: AnimationKey) -> list[AnimationFrame] | None:
        """Frames defined for exactly this key, without fallback."""
        return self._anims.get(key)

    def resolve(self, key: AnimationKey) -> list[AnimationFrame]:
        """Frames for ``key``, following the fallback chain if needed."""
        current: AnimationKey | None = key
        for _ in range(MAX_FALLBACK_HOPS + 1):
            frames = self._anims.get(current)
            if frames is not None:
                return frames
            current = current.fallback()
            if current is None:
                raise AnimationError(f"No animation for {key} and no idle animation to fall back to")
        raise AnimationError(f"Fallback chain for {key} is longer than {MAX_FALLBACK_HOPS} steps")


def _parse_duration_ms(header: str, lineno: int) -> float:
    value = header[len("frame "):].strip()
    if value.endswith("ms"):
        value = value[:-2].strip()
    try:
        ms = float(value)
    except ValueError:
        raise ParseError(f"line {lineno}: invalid frame duration {value!r}") from None
    if ms < 0 or ms != ms or ms == float("inf"):
        raise ParseError(f"line {lineno}: invalid frame duration {value!r}")
    return ms / 1000.0


def load(text: str) -> AnimationLibrary:
    """Parse animation source text.

    Raises ParseError on unknown keys, bad frame durations, animations
    without frames, stray text outside a block, or a missing ``idle``.
    """
    anims: dict[AnimationKey, list[AnimationFrame]] = {}
    key: AnimationKey | None = None
    frames: list[AnimationFrame] = []

    def finish(lineno: int) -> None:
        if key is None:
            return
        if not frames:
            raise ParseError(f"line {lineno}: animation {key} has no frames")
        if key in anims:
            logger.warning("Animation %s defined twice, using the last one", key)
        anims[key] = frames

    for lineno, line in enumerate(text.splitlines(), start=1):
        if line.startswith("animation "):
            finish(lineno)
            key = AnimationKey.parse(line[len("animation "):])
            frames = []
        elif line.startswith("frame ") and key is not None:
            frames.append(AnimationFrame(duration=_parse_duration_ms(line, lineno)))
        elif key is None:
            if line.strip():
                raise ParseError(f"line {lineno}: expected 'animation <name>', got {line!r}")
        elif not frames:
            raise ParseError(f"line {lineno}: expected 'frame <N>ms', got {line!r}")
        else:
            frames[-1].lines.append(line)
    finish(len(text.splitlines()) + 1)

    if AnimationKey.idle() not in anims:
        raise ParseError("No idle animation defined")

    library = AnimationLibrary(anims)
    logger.debug(
        "Loaded %d animations (max sadness %d, bounds %s)",
        len(library), library.max_sadness, library.max_bounds,
    )
    return library


def load_file(path: str) -> AnimationLibrary:
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as exc:
        raise ParseError(f"Could not read animation file {path!r}: {exc}") from exc
    try:
        return load(text)
    except ParseError as exc:
        raise ParseError(f"{path}: {exc}") from exc


def character_file(character: str) -> str:
    """Path of the bundled animation file for a character choice."""
    name = character.strip().lower().replace(" ", "_")
    if name not in CHARACTERS:
        raise ParseError(f"Unknown character {character!r} (choose from {', '.join(CHARACTERS)})")
    return os.path.join(ANIMATIONS_DIR, f"{name}.txt")
