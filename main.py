#!/usr/bin/env python3
"""Health Pet - a desktop companion that keeps you on top of self-care.

A transparent, always-on-top strip with a little text-art pet that gets
sad when eating, drinking, sleeping and other recurring tasks go overdue,
and cheers up when you mark them done.
"""

import argparse
import logging
import os
import signal
import sys

import gi

gi.require_version("Gtk", "3.0")
from gi.repository import GLib, Gtk  # noqa: E402

import animations  # noqa: E402
from animator import Companion  # noqa: E402
from config import CONFIG_FILE, HISTORY_FILE, load_config, load_history, parse_colour  # noqa: E402
from errors import AnimationError, ParseError  # noqa: E402
from notifier import Notifier  # noqa: E402
from task_manager import TaskManager  # noqa: E402

logger = logging.getLogger("health-pet")

DEFAULT_PID_FILE = os.path.join(os.environ.get("XDG_RUNTIME_DIR", "/tmp"), "health-pet.pid")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="health-pet",
        description="Desktop companion that reminds you of recurring self-care tasks",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=CONFIG_FILE,
        help=f"Path to the config file (default: {CONFIG_FILE})",
    )
    parser.add_argument(
        "--character",
        type=str,
        default=None,
        help=f"Companion to show, one of {', '.join(animations.CHARACTERS)} (overrides config)",
    )
    parser.add_argument(
        "--animation-file",
        type=str,
        default=None,
        help="Path to a custom animation file (overrides --character)",
    )
    parser.add_argument(
        "--font-size",
        type=float,
        default=16.0,
        help="Font size of the companion in points (default: 16)",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Do not load or save task completion times",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to stderr",
    )
    parser.add_argument(
        "--pid-file",
        type=str,
        default=DEFAULT_PID_FILE,
        help=f"Path to the PID file (default: {DEFAULT_PID_FILE})",
    )
    return parser.parse_args(argv)


def setup_logging(debug: bool) -> None:
    """Configure logging to stderr."""
    level = logging.DEBUG if debug else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("[%(levelname)s] %(name)s: %(message)s")
    )
    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def setup_signal_handlers() -> None:
    """Quit the GTK main loop on SIGINT and SIGTERM."""
    def handle_signal() -> bool:
        logger.info("Received signal, shutting down")
        Gtk.main_quit()
        return GLib.SOURCE_REMOVE

    for signum in (signal.SIGINT, signal.SIGTERM):
        GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signum, handle_signal)


def check_single_instance(pid_file: str) -> None:
    """Exit if another instance is already running."""
    if os.path.exists(pid_file):
        try:
            with open(pid_file) as f:
                pid = int(f.read().strip())
            os.kill(pid, 0)  # raises if process doesn't exist
            logger.info("Already running (PID %d), exiting", pid)
            sys.exit(0)
        except (ValueError, ProcessLookupError, PermissionError, OSError):
            pass  # stale PID file, continue


def write_pid(pid_file: str) -> None:
    with open(pid_file, "w") as f:
        f.write(str(os.getpid()))


def remove_pid(pid_file: str) -> None:
    try:
        os.unlink(pid_file)
    except OSError:
        pass


def main() -> int:
    args = parse_args()
    setup_logging(args.debug)

    try:
        config = load_config(args.config)
        if args.character:
            config.character = args.character
        animation_file = args.animation_file or animations.character_file(config.character)
        library = animations.load_file(animation_file)
        colour = parse_colour(config.colour)
        text_colour = parse_colour(config.text_colour)
    except ParseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    logger.info("Loaded %d animations from %s", len(library), animation_file)
    logger.debug("Animations: %s", ", ".join(str(key) for key in library.keys()))

    task_manager = TaskManager(config)
    history_file = None if args.no_history else HISTORY_FILE
    if history_file:
        task_manager.restore_history(load_history(history_file))
    logger.info("Tracking %d task(s)", len(task_manager.tasks))

    check_single_instance(args.pid_file)
    setup_signal_handlers()
    write_pid(args.pid_file)

    from pet_window import PetWindow
    from text_character import TextCharacter

    window = None
    try:
        companion = Companion(library, idle_animation_time=config.idle_animation_time)
        character = TextCharacter(companion, colour, font_size=args.font_size)
        window = PetWindow(
            character=character,
            task_manager=task_manager,
            config=config,
            notifier=Notifier(enabled=config.notifications, sound=config.sound),
            text_colour=text_colour,
            history_file=history_file,
        )
        window.show_all()
        Gtk.main()
    except AnimationError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        if window is not None and not window.closed:
            window.destroy()
        remove_pid(args.pid_file)
        logger.info("Health Pet shut down")

    return 1 if window.fatal else 0


if __name__ == "__main__":
    sys.exit(main())
