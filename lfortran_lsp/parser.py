#!/usr/bin/env python3
"""
Decoding of LFortran's JSON responses into raw record models.
"""

from __future__ import annotations

import json
from typing import Any, List, Type, TypeVar

from loguru import logger
from pydantic import ValidationError

from .core_types import (
    ErrorDiagnostics,
    MalformedResponseError,
    RawDefinition,
    RawDiagnostic,
    RawEdit,
    RawRecord,
    RawSymbol,
)

RecordT = TypeVar("RecordT", bound=RawRecord)

# lfortran/lfortran#5525: ``--show-errors`` drops the opening brace of the
# first diagnostic object, which would sit at this offset.
DIAGNOSTICS_REPAIR_OFFSET = 28
DIAGNOSTICS_REPAIR_ISSUE = "https://github.com/lfortran/lfortran/issues/5525"


def repair_diagnostics_response(response: str) -> str:
    """Insert the brace lost by lfortran#5525. Applies to diagnostics only."""
    return (
        response[:DIAGNOSTICS_REPAIR_OFFSET] + "{" + response[DIAGNOSTICS_REPAIR_OFFSET:]
    )


class ResponseParser:
    """Turns compiler output into validated records."""

    def __init__(self, repair_diagnostics: bool = True) -> None:
        self.repair_diagnostics = repair_diagnostics

    def _decode(self, response: str) -> Any:
        try:
            return json.loads(response)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(
                f"Response is not valid JSON: {e}", response=response
            ) from e

    def _validate_each(
        self, items: Any, model: Type[RecordT], response: str
    ) -> List[RecordT]:
        if not isinstance(items, list):
            raise MalformedResponseError(
                f"Expected a JSON array of {model.__name__} records, "
                f"got {type(items).__name__}",
                response=response,
            )

        records: List[RecordT] = []
        for index, item in enumerate(items):
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping {model.__name__} record {index}: {e}")
        return records

    def parse_records(self, response: str, model: Type[RecordT]) -> List[RecordT]:
        """
        Decode a JSON array of ``model`` records.

        Elements that do not have the expected shape are skipped with a
        warning; the rest of the array is kept.

        Raises:
            MalformedResponseError: If the response is not a JSON array.
        """
        return self._validate_each(self._decode(response), model, response)

    def parse_symbols(self, response: str) -> List[RawSymbol]:
        return self.parse_records(response, RawSymbol)

    def parse_definitions(self, response: str) -> List[RawDefinition]:
        return self.parse_records(response, RawDefinition)

    def parse_edits(self, response: str) -> List[RawEdit]:
        return self.parse_records(response, RawEdit)

    def parse_diagnostics(self, response: str) -> ErrorDiagnostics:
        """
        Decode a ``{"diagnostics": [...]}`` response.

        When the response is not valid JSON, one repair is attempted before
        giving up (see ``repair_diagnostics_response``).
        """
        try:
            data = self._decode(response)
        except MalformedResponseError:
            if not self.repair_diagnostics:
                raise
            logger.warning(
                "Failed to parse response, attempting to repair and re-parse it."
            )
            try:
                data = self._decode(repair_diagnostics_response(response))
            except MalformedResponseError:
                logger.error("Failed to repair response")
                raise
            logger.info(f"Repair succeeded, see: {DIAGNOSTICS_REPAIR_ISSUE}")

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a diagnostics object, got {type(data).__name__}",
                response=response,
            )

        diagnostics = self._validate_each(
            data.get("diagnostics", []), RawDiagnostic, response
        )
        try:
            return ErrorDiagnostics(uri=data.get("uri"), diagnostics=diagnostics)
        except ValidationError as e:
            raise MalformedResponseError(
                f"Unexpected diagnostics response: {e}", response=response
            ) from e
