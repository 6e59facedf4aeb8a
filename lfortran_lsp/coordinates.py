#!/usr/bin/env python3
"""
Conversion of LFortran's 1-based positions to the protocol's 0-based ones.
"""

from __future__ import annotations

from lsprotocol import types as lsp

from .core_types import RawPosition, RawRange


def to_position(position: RawPosition) -> lsp.Position:
    return lsp.Position(line=position.line - 1, character=position.character - 1)


def to_range(raw: RawRange) -> lsp.Range:
    """Shift both endpoints of ``raw`` by one line and one column."""
    return lsp.Range(start=to_position(raw.start), end=to_position(raw.end))


def to_diagnostic_range(raw: RawRange) -> lsp.Range:
    """
    Shift a diagnostic range.

    Diagnostics keep their end column as reported; only the end line moves.
    Editors already rely on this, so it is kept as is.
    """
    return lsp.Range(
        start=to_position(raw.start),
        end=lsp.Position(line=raw.end.line - 1, character=raw.end.character),
    )
