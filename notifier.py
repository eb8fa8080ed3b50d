"""Desktop notification and sound for overdue tasks.

Notifications go through plyer.  The sound is played by the first audio
player found on PATH, spawned in the background and never waited on.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from plyer import notification

logger = logging.getLogger(__name__)

APP_NAME = "Health Pet"
NOTIFY_TIMEOUT = 10
SOUND_PLAYERS = ("paplay", "pw-play", "aplay")


class Notifier:
    def __init__(self, enabled: bool = True, sound: str | None = None) -> None:
        self.enabled = enabled
        self.sound = sound
        self._player = next((p for p in map(shutil.which, SOUND_PLAYERS) if p), None)
        if sound and self._player is None:
            logger.debug("No sound player found (tried %s)", ", ".join(SOUND_PLAYERS))

    def notify(self, title: str, body: str) -> bool:
        if not self.enabled:
            return False
        try:
            notification.notify(
                title=title,
                message=body,
                app_name=APP_NAME,
                timeout=NOTIFY_TIMEOUT,
            )
        except Exception as exc:
            logger.warning("Desktop notification failed: %s", exc)
            return False
        return True

    def play_sound(self) -> bool:
        if not self.enabled or not self.sound or self._player is None:
            return False
        try:
            subprocess.Popen(
                [self._player, self.sound],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            logger.debug("Could not run %s: %s", self._player, exc)
            return False
        return True

    def task_overdue(self, title: str, message: str) -> None:
        logger.info("Overdue: %s", title)
        self.notify(title, message)
        self.play_sound()
