"""Base error definition for takeout-fixer."""

from typing import Any, Dict


class TakeoutFixerError(Exception):
    """Base exception for all takeout-fixer errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context
