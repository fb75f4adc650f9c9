"""Exit statuses and error reporting for the ``fightlog`` command line."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from fightlog.events import EventDataError
from fightlog.io.recordings import RecordingFormatError
from fightlog.modules.config import ModuleConfigError
from fightlog.modules.registry import ModuleConfigurationError

__all__ = [
    "EXIT_CODES",
    "CliError",
    "ErrorReport",
    "category_for",
    "log_cli_error",
]


logger = logging.getLogger(__name__)

EXIT_CODES: Mapping[str, int] = MappingProxyType(
    {
        "runtime": 1,
        "usage": 2,
        "io": 3,
        "not_found": 4,
    }
)

# First match wins, so subclasses precede their bases.
_CATEGORY_BY_TYPE: tuple[tuple[type[BaseException], str], ...] = (
    (FileNotFoundError, "not_found"),
    (ModuleConfigurationError, "usage"),
    (ModuleConfigError, "usage"),
    (LookupError, "usage"),
    (RecordingFormatError, "io"),
    (EventDataError, "io"),
    (OSError, "io"),
)


def category_for(error: BaseException) -> str:
    return next(
        (category for error_type, category in _CATEGORY_BY_TYPE if isinstance(error, error_type)),
        "runtime",
    )


def _printable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


@dataclass(frozen=True)
class ErrorReport:
    """What the user is told when a command fails."""

    message: str
    category: str = "runtime"
    context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.category not in EXIT_CODES:
            raise ValueError(f"unknown error category '{self.category}'")
        object.__setattr__(
            self,
            "context",
            MappingProxyType({str(key): _printable(value) for key, value in self.context.items()}),
        )

    @property
    def status_code(self) -> int:
        return EXIT_CODES[self.category]

    def as_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "category": self.category,
            "status_code": self.status_code,
            "context": dict(self.context),
        }


class CliError(RuntimeError):
    """Failure of a command, mapped onto a process exit status."""

    def __init__(
        self,
        message: str,
        *,
        category: str = "runtime",
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.report = ErrorReport(message, category, context or {})
        self.logged = False

    @property
    def category(self) -> str:
        return self.report.category

    @property
    def status_code(self) -> int:
        return self.report.status_code

    @classmethod
    def from_exception(
        cls,
        error: BaseException,
        *,
        context: Optional[Mapping[str, Any]] = None,
    ) -> "CliError":
        # KeyError quotes its message when converted with str().
        if isinstance(error, KeyError) and error.args:
            message = str(error.args[0])
        else:
            message = str(error) or type(error).__name__
        return cls(message, category=category_for(error), context=context)


def log_cli_error(error: CliError, *, target: Optional[logging.Logger] = None) -> None:
    """Log ``error`` once with its category, exit status and context."""

    if error.logged:
        return
    (target or logger).error(
        error.report.message,
        extra={
            "event": "cli.error",
            "category": error.category,
            "status_code": error.status_code,
            "context": dict(error.report.context),
        },
        exc_info=error,
    )
    error.logged = True
