#!/usr/bin/env python3
"""
Mapping of compiler-reported filenames back to real documents.

LFortran reports filenames the way it found them: relative to the working
directory, relative to an ``-I`` include directory, or as the scratch file it
was given.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterable, Optional

from loguru import logger

from .scratch import ScratchFile


def resolve_path(
    filename: str,
    flags: Iterable[str],
    resolved: Optional[Dict[str, str]] = None,
) -> str:
    """
    Resolve ``filename`` to an absolute path.

    An existing path is absolutized as given. Otherwise the ``-I<dir>`` entries
    of ``flags`` are scanned in order and the first ``<dir>/<filename>`` that
    exists wins; it is symlink-resolved and stored in ``resolved``, the cache
    for the current response batch. When nothing matches, the given path
    is absolutized anyway and a warning is logged.
    """
    file_path = filename

    if not os.path.exists(file_path):
        resolution = resolved.get(filename) if resolved is not None else None
        if resolution is None:
            for flag in flags:
                if not flag.startswith("-I"):
                    continue
                candidate = os.path.join(flag[2:], filename)
                if os.path.exists(candidate):
                    resolution = os.path.realpath(candidate)
                    if resolved is not None:
                        resolved[filename] = resolution
                    file_path = resolution
                    break
        else:
            file_path = resolution

    if not os.path.exists(file_path):
        logger.warning(f"Failed to find file by name: {file_path}")

    return os.path.abspath(file_path)


def to_document_uri(
    path: str, request_uri: str, scratch: Optional[ScratchFile] = None
) -> str:
    """
    Turn a resolved path into the URI reported to the editor.

    The compiler only knows the scratch file, so a path naming it is replaced
    by the URI of the document the request was made for.
    """
    if scratch is not None and scratch.matches(path):
        return request_uri
    return Path(path).as_uri()
