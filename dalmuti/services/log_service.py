"""Logging service."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def _format(data: dict[str, Any]) -> str:
    return " | ".join(f"{k}={v}" for k, v in data.items())


class LogService:
    """Service for structured audit logging.

    Every use case writes one ``key=value`` line so a room's history can be
    followed with a plain grep on ``room=``.
    """

    def info(self, data: dict[str, Any]) -> None:
        """Log info message.

        Args:
            data: Log data as key-value pairs

        """
        logger.info(_format(data))

    def warning(self, data: dict[str, Any]) -> None:
        """Log warning message."""
        logger.warning(_format(data))

    def error(self, data: dict[str, Any]) -> None:
        """Log error message."""
        logger.error(_format(data))

    def command(self, action: str, room_id: str, **fields: Any) -> None:
        """Log a completed use case.

        Args:
            action: Use case name, e.g. ``play_cards``
            room_id: Room the command ran against
            **fields: Extra key-value pairs (player, phase, ...)

        """
        self.info({"action": action, "room": room_id, **fields})

    def rejected(self, action: str, room_id: str, code: str, message: str) -> None:
        """Log a command refused by the rules."""
        self.warning({"action": action, "room": room_id, "code": code, "message": message})
