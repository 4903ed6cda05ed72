"""Desktop notifications via notify-send."""

from __future__ import annotations

import shutil
import subprocess

from .base import NotificationChannel


class DesktopChannel(NotificationChannel):
    """Send notifications through the freedesktop ``notify-send`` command."""

    name = "desktop"

    def __init__(self, enabled: bool = True, app_name: str = "freshkeep") -> None:
        super().__init__()
        self._enabled = enabled
        self._app_name = app_name

    def can_deliver(self) -> bool:
        return self._enabled and shutil.which("notify-send") is not None

    def send(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        require_interaction: bool = False,
        silent: bool = False,
        priority: str = "medium",
    ) -> None:
        """Show a desktop notification.

        High-priority reminders use critical urgency, which keeps them on
        screen until dismissed.

        Raises:
            RuntimeError: If notify-send fails or times out.
        """
        if require_interaction:
            urgency = "critical"
        elif silent:
            urgency = "low"
        else:
            urgency = "normal"

        cmd = [
            "notify-send",
            "--app-name", self._app_name,
            "--urgency", urgency,
            "--hint", f"string:x-dunst-stack-tag:{tag}",
            title,
            body,
        ]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired:
            raise RuntimeError("notify-send timed out")
        if result.returncode != 0:
            raise RuntimeError(
                f"notify-send failed: {result.stderr.strip()}"
            )
