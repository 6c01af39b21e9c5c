"""
Shared exceptions.

Operation-level failures (validation, duplicates, unknown ids on update and
delete) are returned as result values; these exceptions cover precondition
violations and file-level problems.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


class InvalidArgumentError(AppError):
    def __init__(self, message: str = "Invalid argument", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details)


class CSVFileError(AppError):
    """A CSV file cannot be used at all (missing, unreadable, no data rows)."""

    def __init__(
        self,
        message: str = "Invalid CSV file",
        reason: str | None = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, details=details)
        self.reason = reason
