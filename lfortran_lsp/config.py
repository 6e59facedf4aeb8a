#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Settings models for the LFortran compiler accessor.

The models accept both snake_case field names and the camelCase keys the
editor sends (``lfortranPath``, ``maxNumberOfProblems``).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .core_types import DEFAULT_EXECUTABLE, ConfigurationError, PathLike

# Key under which the editor nests the server settings.
SETTINGS_SECTION = "LFortranLanguageServer"


class CompilerSettings(BaseModel):
    """How to find and invoke the compiler."""

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    lfortran_path: str = Field(
        default=DEFAULT_EXECUTABLE,
        alias="lfortranPath",
        description="Path to the lfortran executable, or a bare command name",
    )
    flags: List[str] = Field(
        default_factory=list,
        description="Additional flags passed to every invocation",
    )
    timeout: Optional[float] = Field(
        default=30.0,
        description="Seconds before a compiler invocation is killed; None waits forever",
    )
    repair_malformed_diagnostics: bool = Field(
        default=True,
        alias="repairMalformedDiagnostics",
        description="Work around lfortran issue #5525 when parsing diagnostics",
    )

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("timeout must be positive")
        return v


class LFortranSettings(BaseModel):
    """Settings consumed by the accessor on every request."""

    model_config = ConfigDict(
        extra="ignore", validate_assignment=True, populate_by_name=True
    )

    compiler: CompilerSettings = Field(default_factory=CompilerSettings)
    max_number_of_problems: int = Field(
        default=100,
        ge=0,
        alias="maxNumberOfProblems",
        description="Maximum number of diagnostics reported per document",
    )


def parse_settings(data: Dict[str, Any]) -> LFortranSettings:
    """
    Validate a settings mapping.

    The mapping may be the settings object itself or a wrapper holding it
    under ``LFortranLanguageServer``.
    """
    if SETTINGS_SECTION in data and isinstance(data[SETTINGS_SECTION], dict):
        data = data[SETTINGS_SECTION]

    try:
        return LFortranSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e}",
            validation_errors=e.errors(),
        ) from e


def load_settings(file_path: PathLike) -> LFortranSettings:
    """
    Load settings from a JSON file.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not JSON, or
            does not validate.
    """
    path = Path(file_path)

    if not path.is_file():
        raise ConfigurationError(
            f"Settings file not found: {path}", file_path=str(path)
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in settings file {path}: {e}",
            file_path=str(path),
            json_error=str(e),
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read settings file {path}: {e}",
            file_path=str(path),
            os_error=str(e),
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Settings file {path} must contain a JSON object", file_path=str(path)
        )

    settings = parse_settings(data)
    logger.debug(f"Loaded settings from {path}")
    return settings
