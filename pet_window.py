"""GTK3 transparent window for the Health Pet companion.

Creates a borderless, always-on-top, RGBA-transparent strip along the
bottom of the primary monitor.  The companion walks along it while a
small panel lists the tasks that are due, each with the key that marks
it done.

Every tick runs the update phase (classify tasks, score happiness,
advance the companion) and then queues a redraw; drawing only reads the
state the update left behind.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta
from typing import Protocol

import cairo
import gi

gi.require_version("Gtk", "3.0")
gi.require_version("Gdk", "3.0")
from gi.repository import Gdk, GLib, Gtk  # noqa: E402

import happiness  # noqa: E402
from animator import Companion, RoomBounds  # noqa: E402
from config import Config, save_history  # noqa: E402
from errors import ScheduleError  # noqa: E402
from notifier import Notifier  # noqa: E402
from schedule import TaskType  # noqa: E402
from task_manager import TaskDue, TaskManager, Tasks, assign_keys, newly_overdue  # noqa: E402

logger = logging.getLogger(__name__)


class CharacterProto(Protocol):
    companion: Companion
    cell_width: float
    cell_height: float
    size_in_pixels: tuple[int, int]
    def columns(self, width: int) -> int: ...
    def draw(self, ctx: cairo.Context, width: int, floor_y: float) -> None: ...


TICK_MS = 100
PANEL_FONT_SIZE = 13
PANEL_LINE_HEIGHT = 18
PANEL_LINES = 8
# mood line above the tasks, next-up line below
PANEL_TASK_ROWS = PANEL_LINES - 2
OVERDUE_COLOUR = (1.0, 0.45, 0.35)
FLOOR_MARGIN = 4


def _describe(due: TaskDue, now: datetime) -> str:
    late = now - due.when
    if late < timedelta(minutes=1):
        return due.type.message
    minutes = int(late.total_seconds() // 60)
    if minutes < 60:
        return f"{due.type.message} ({minutes}m)"
    return f"{due.type.message} ({minutes // 60}h{minutes % 60:02d}m)"


class PetWindow(Gtk.Window):
    """Transparent strip window hosting the companion and the task panel."""

    def __init__(
        self,
        character: CharacterProto,
        task_manager: TaskManager,
        config: Config,
        notifier: Notifier,
        text_colour: tuple[float, float, float] = (1.0, 1.0, 1.0),
        history_file: str | None = None,
    ) -> None:
        super().__init__(title="Health Pet")

        self.character = character
        self.task_manager = task_manager
        self.config = config
        self.notifier = notifier
        self._text_colour = text_colour
        self._history_file = history_file
        self.fatal = False
        self.closed = False

        self._tasks = Tasks()
        self._happiness = 1.0
        self._keys: list[tuple[str | None, TaskDue]] = []
        self._overdue_types: set[TaskType] = set()
        self._ongoing_task: TaskType | None = None
        self._ongoing_until = 0.0
        self._tick_id: int | None = None

        self._setup_window()
        self._setup_drawing()
        self._setup_input()
        self._place_on_screen()
        self._start_timers()

    # ------------------------------------------------------------------
    # Window configuration
    # ------------------------------------------------------------------

    def _setup_window(self) -> None:
        self.set_decorated(False)
        self.set_keep_above(True)
        self.stick()
        self.set_skip_pager_hint(True)
        self.set_accept_focus(True)

        screen = self.get_screen()
        visual = screen.get_rgba_visual()
        if visual is not None:
            self.set_visual(visual)
            logger.debug("RGBA visual enabled")
        else:
            logger.warning("RGBA visual not available")

        self.set_app_paintable(True)
        self.connect("destroy", self._on_destroy)

    def _setup_drawing(self) -> None:
        self._drawing_area = Gtk.DrawingArea()
        self._drawing_area.connect("draw", self._on_draw)
        self.add(self._drawing_area)

    def _setup_input(self) -> None:
        self.add_events(Gdk.EventMask.KEY_PRESS_MASK)
        self.connect("key-press-event", self._on_key_press)

    def _get_primary_monitor_geometry(self) -> Gdk.Rectangle:
        display = Gdk.Display.get_default()
        monitor = display.get_primary_monitor() or display.get_monitor(0)
        return monitor.get_geometry()

    def _place_on_screen(self) -> None:
        geo = self._get_primary_monitor_geometry()
        _, sprite_h = self.character.size_in_pixels
        height = sprite_h + PANEL_LINES * PANEL_LINE_HEIGHT + FLOOR_MARGIN * 2
        self.set_default_size(geo.width, height)
        self.move(geo.x, geo.y + geo.height - height)
        logger.debug("Window placed at (%d, %d), %dx%d", geo.x, geo.y + geo.height - height, geo.width, height)

    # ------------------------------------------------------------------
    # Tick loop
    # ------------------------------------------------------------------

    def _start_timers(self) -> None:
        self._tick_id = GLib.timeout_add(TICK_MS, self._on_tick)

    def _stop_timers(self) -> None:
        if self._tick_id is not None:
            GLib.source_remove(self._tick_id)
            self._tick_id = None

    def _on_tick(self) -> bool:
        try:
            self._tick()
        except Exception:
            logger.exception("Unexpected error, shutting down")
            self.fatal = True
            self._tick_id = None
            self.destroy()
            return False
        self._drawing_area.queue_draw()
        return True

    def _room_bounds(self) -> RoomBounds:
        width = max(self._drawing_area.get_allocated_width(), self.get_size()[0])
        cols = self.character.columns(width)
        return RoomBounds(left=-(cols // 2), right=cols - cols // 2)

    def _tick(self) -> None:
        now = datetime.now()
        try:
            tasks = self.task_manager.classify(now)
        except ScheduleError as exc:
            logger.error("Skipping update: %s", exc)
            return

        for due in newly_overdue(self._overdue_types, tasks):
            self.notifier.task_overdue(due.type.name, due.type.message)
        self._overdue_types = {due.type for due in tasks.past}

        self._tasks = tasks
        self._happiness = happiness.score(
            tasks.past, now, self.config.task_timeout, self.config.task_timeout_max,
        )
        self._keys = assign_keys(tasks.due, self.task_manager.keybinds(), limit=PANEL_TASK_ROWS)

        if self._ongoing_task is not None and time.monotonic() >= self._ongoing_until:
            self._ongoing_task = None
        self.character.companion.update(
            self._happiness, self._ongoing_task, self._room_bounds(), tasks.past,
        )

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _on_key_press(self, widget: Gtk.Window, event: Gdk.EventKey) -> bool:
        ctrl = bool(event.state & Gdk.ModifierType.CONTROL_MASK)
        name = (Gdk.keyval_name(event.keyval) or "").lower()
        if name == "escape" or (name == "q" and not ctrl) or (ctrl and name in ("q", "c")):
            logger.info("Quit requested")
            self.destroy()
            return True
        if ctrl:
            return False

        codepoint = Gdk.keyval_to_unicode(event.keyval)
        if not codepoint:
            return False
        pressed = chr(codepoint).lower()
        for key, due in self._keys:
            if key is not None and key.lower() == pressed:
                self.complete_task(due.type)
                return True
        logger.debug("Unbound key %r", pressed)
        return False

    def complete_task(self, task_type: TaskType) -> None:
        if not self.task_manager.complete(task_type, datetime.now()):
            return
        self._ongoing_task = task_type
        self._ongoing_until = time.monotonic() + self.config.task_animation_duration.total_seconds()
        if self._history_file:
            try:
                save_history(self.task_manager.history(), self._history_file)
            except OSError as exc:
                logger.warning("Could not save history: %s", exc)
        self._tick()
        self._drawing_area.queue_draw()

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _on_draw(self, widget: Gtk.DrawingArea, ctx: cairo.Context) -> bool:
        ctx.set_operator(cairo.OPERATOR_SOURCE)
        ctx.set_source_rgba(0, 0, 0, 0)
        ctx.paint()
        ctx.set_operator(cairo.OPERATOR_OVER)

        width = widget.get_allocated_width()
        height = widget.get_allocated_height()
        try:
            self._draw_panel(ctx)
            self.character.draw(ctx, width, height - FLOOR_MARGIN)
        except Exception:
            logger.exception("Draw failed, skipping frame")
        return True

    def _panel_lines(self) -> list[tuple[str, tuple[float, float, float]]]:
        now = datetime.now()
        lines = [(f"Mood: {happiness.mood(self._happiness)}", self._text_colour)]
        for key, due in self._keys:
            label = f"[{key}] " if key else "    "
            colour = OVERDUE_COLOUR if due in self._tasks.past else self._text_colour
            lines.append((label + _describe(due, now), colour))
        if self._tasks.upcoming:
            nxt = self._tasks.upcoming[0]
            lines.append((f"Next: {nxt.type.name} at {nxt.when:%H:%M}", self._text_colour))
        return lines

    def _draw_panel(self, ctx: cairo.Context) -> None:
        ctx.save()
        ctx.select_font_face("Sans", cairo.FONT_SLANT_NORMAL, cairo.FONT_WEIGHT_BOLD)
        ctx.set_font_size(PANEL_FONT_SIZE)
        for i, (text, (r, g, b)) in enumerate(self._panel_lines()):
            y = FLOOR_MARGIN + (i + 1) * PANEL_LINE_HEIGHT
            # Dark outline for readability on any background
            ctx.set_source_rgba(0, 0, 0, 0.8)
            for dx, dy in [(-1, -1), (-1, 1), (1, -1), (1, 1)]:
                ctx.move_to(8 + dx, y + dy)
                ctx.show_text(text)
            ctx.set_source_rgba(r, g, b, 0.95)
            ctx.move_to(8, y)
            ctx.show_text(text)
        ctx.restore()

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _cleanup(self) -> None:
        self._stop_timers()

    def _on_destroy(self, widget: Gtk.Window) -> None:
        self.closed = True
        self._cleanup()
        if Gtk.main_level() > 0:
            Gtk.main_quit()
