#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
LFortran LSP compiler accessor.

This package answers language-server requests by running the LFortran
compiler on the document being edited and translating its output into
protocol objects.

Features:
- Document symbols, go-to-definition, diagnostics and rename
- Per-invocation scratch files, removed on exit, SIGINT and crashes
- Include-path aware resolution of reported filenames
- Recovery from lfortran's malformed diagnostics output (issue #5525)
- Invocation timeouts
"""

from .accessor import LFortranAccessor
from .config import CompilerSettings, LFortranSettings, load_settings, parse_settings
from .core_types import (
    AccessorError,
    ConfigurationError,
    ErrorKind,
    ExecutableNotFoundError,
    InvocationResult,
    MalformedResponseError,
)
from .invoker import CompilerInvoker
from .parser import ResponseParser
from .paths import resolve_path
from .scratch import CleanupRegistry, ScratchFile

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    # Core types
    "ErrorKind",
    "InvocationResult",
    "AccessorError",
    "ConfigurationError",
    "ExecutableNotFoundError",
    "MalformedResponseError",

    # Settings
    "CompilerSettings",
    "LFortranSettings",
    "load_settings",
    "parse_settings",

    # Components
    "LFortranAccessor",
    "CompilerInvoker",
    "ResponseParser",
    "ScratchFile",
    "CleanupRegistry",
    "resolve_path",
]
