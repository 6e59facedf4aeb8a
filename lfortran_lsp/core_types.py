#!/usr/bin/env python3
"""
Core types and data models for the LFortran compiler accessor.

This module holds the invocation result record, the raw response models that
LFortran's JSON output is validated against, and the exception hierarchy used
inside the accessor components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, List, Optional, TypeAlias, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

PathLike: TypeAlias = Union[str, Path]

# Name of the compiler executable looked up on PATH.
DEFAULT_EXECUTABLE = "lfortran"

# Value written into the ``source`` field of every reported diagnostic.
DIAGNOSTIC_SOURCE = "lfortran-lsp"


class ErrorKind(StrEnum):
    """Kinds of failure the accessor absorbs and reports."""

    EXECUTABLE_NOT_FOUND = "executable_not_found"
    LAUNCH_FAILURE = "launch_failure"
    TIMEOUT = "timeout"
    MALFORMED_OUTPUT = "malformed_output"


@dataclass(frozen=True, slots=True)
class InvocationResult:
    """
    Immutable result of one compiler invocation.

    ``exit_status`` is ``None`` when the process was terminated by a signal,
    in which case ``signal`` names it.
    """

    exit_status: Optional[int] = None
    signal: Optional[str] = None
    stdout: str = ""
    stderr: str = ""
    invocation_error: Optional[str] = None
    command: List[str] = field(default_factory=list)
    execution_time: float = 0.0
    timed_out: bool = False
    error_kind: Optional[ErrorKind] = None

    def __post_init__(self) -> None:
        if self.execution_time < 0:
            raise ValueError("execution_time cannot be negative")

    @property
    def success(self) -> bool:
        """Whether the process launched and exited with status 0."""
        return self.invocation_error is None and self.exit_status == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "exit_status": self.exit_status,
            "signal": self.signal,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "invocation_error": self.invocation_error,
            "command": self.command,
            "execution_time": self.execution_time,
            "timed_out": self.timed_out,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


# Raw response records, as LFortran prints them (1-based positions).

class RawRecord(BaseModel):
    """Base for records decoded from compiler output; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RawPosition(RawRecord):
    line: int
    character: int


class RawRange(RawRecord):
    start: RawPosition
    end: RawPosition


class RawLocation(RawRecord):
    range: RawRange
    uri: Optional[str] = None


class RawSymbol(RawRecord):
    """An entry of ``--show-document-symbols`` output."""

    name: str
    kind: int
    location: RawLocation
    filename: Optional[str] = None
    container_name: Optional[str] = Field(default=None, alias="containerName")


class RawDefinition(RawRecord):
    """An entry of ``--lookup-name`` output."""

    location: RawLocation
    filename: Optional[str] = None
    name: Optional[str] = None


class RawEdit(RawRecord):
    """An entry of ``--rename-symbol`` output; entries without a location are skipped."""

    location: Optional[RawLocation] = None
    filename: Optional[str] = None


class RawDiagnostic(RawRecord):
    range: RawRange
    message: str
    severity: Optional[int] = None
    code: Optional[Union[int, str]] = None
    source: Optional[str] = None


class ErrorDiagnostics(RawRecord):
    """Top-level object printed by ``--show-errors``."""

    uri: Optional[str] = None
    diagnostics: List[RawDiagnostic] = Field(default_factory=list)


class AccessorError(Exception):
    """Base exception for accessor errors."""

    def __init__(
        self, message: str, *, error_code: Optional[ErrorKind] = None, **kwargs: Any
    ):
        super().__init__(message)
        self.error_code = error_code
        self.context = kwargs

        logger.debug(
            f"{type(self).__name__}: {message}",
            extra={"error_code": error_code, "context": kwargs},
        )


class ExecutableNotFoundError(AccessorError):
    """Raised when the lfortran executable cannot be located."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, error_code=ErrorKind.EXECUTABLE_NOT_FOUND, **kwargs)


class MalformedResponseError(AccessorError):
    """Raised when compiler output cannot be decoded into the expected shape."""

    def __init__(self, message: str, *, response: str = "", **kwargs: Any):
        super().__init__(
            message, error_code=ErrorKind.MALFORMED_OUTPUT, response=response, **kwargs
        )
        self.response = response


class ConfigurationError(AccessorError):
    """Raised when settings cannot be loaded or validated."""

    pass
