#!/usr/bin/env python3
"""
Scratch files used to hand document text to the compiler.

LFortran reads its input from a file, so every invocation writes the editor's
buffer to a scratch file first. Each ``ScratchFile`` is tracked by a
``CleanupRegistry`` which deletes whatever is still alive on normal exit, on
SIGINT, and on an uncaught exception.
"""

from __future__ import annotations

import atexit
import os
import signal
import sys
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional, Set

import aiofiles
from loguru import logger

SCRATCH_PREFIX = "lfortran-lsp"
SCRATCH_SUFFIX = ".tmp"


class CleanupRegistry:
    """
    Releases live scratch files on every process exit path.

    The hooks are reference counted: every ``install`` needs a matching
    ``uninstall``, and the hooks stay in place until the last one.
    """

    def __init__(self) -> None:
        self._files: Set[ScratchFile] = set()
        self._lock = threading.Lock()
        self._users = 0
        self._previous_sigint: Any = None
        self._previous_excepthook: Any = None

    def register(self, scratch: ScratchFile) -> None:
        with self._lock:
            self._files.add(scratch)

    def unregister(self, scratch: ScratchFile) -> None:
        with self._lock:
            self._files.discard(scratch)

    @property
    def live_files(self) -> Set[ScratchFile]:
        with self._lock:
            return set(self._files)

    @property
    def installed(self) -> bool:
        return self._users > 0

    def release_all(self) -> None:
        """Release every registered scratch file. Never raises."""
        for scratch in self.live_files:
            scratch.release()

    def install(self) -> None:
        """Hook process exit, SIGINT and uncaught exceptions on first use."""
        self._users += 1
        if self._users > 1:
            return

        atexit.register(self.release_all)

        self._previous_excepthook = sys.excepthook
        sys.excepthook = self._handle_exception

        # Signal handlers can only be set from the main thread.
        if threading.current_thread() is threading.main_thread():
            self._previous_sigint = signal.getsignal(signal.SIGINT)
            signal.signal(signal.SIGINT, self._handle_sigint)
        else:
            logger.debug("Not on the main thread, SIGINT cleanup hook skipped")

        logger.debug("Scratch file cleanup hooks installed")

    def uninstall(self) -> None:
        """Drop one ``install``; the hooks are removed after the last one."""
        if self._users == 0:
            return
        self._users -= 1
        if self._users > 0:
            return

        atexit.unregister(self.release_all)

        if sys.excepthook == self._handle_exception:
            sys.excepthook = self._previous_excepthook or sys.__excepthook__

        if self._previous_sigint is not None and (
            threading.current_thread() is threading.main_thread()
        ):
            if signal.getsignal(signal.SIGINT) == self._handle_sigint:
                signal.signal(signal.SIGINT, self._previous_sigint)
        self._previous_sigint = None
        self._previous_excepthook = None

        logger.debug("Scratch file cleanup hooks removed")

    def _handle_sigint(self, signum: int, frame: Any) -> None:
        self.release_all()
        previous = self._previous_sigint
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            signal.default_int_handler(signum, frame)

    def _handle_exception(self, exc_type, exc_value, exc_traceback) -> None:
        self.release_all()
        hook = self._previous_excepthook or sys.__excepthook__
        hook(exc_type, exc_value, exc_traceback)


# Registry shared by every accessor in the process.
default_registry = CleanupRegistry()


class ScratchFile:
    """
    One uniquely named temporary file.

    ``acquire`` creates the file once, ``write`` overwrites its content, and
    ``release`` deletes it. Releasing is idempotent and tolerates the file
    having been removed already; deletion failures are logged, not raised.
    """

    def __init__(
        self,
        prefix: str = SCRATCH_PREFIX,
        suffix: str = SCRATCH_SUFFIX,
        directory: Optional[str] = None,
        registry: Optional[CleanupRegistry] = None,
    ) -> None:
        self.prefix = prefix
        self.suffix = suffix
        self.directory = directory
        self.registry = registry if registry is not None else default_registry
        self._path: Optional[Path] = None
        self._released = False

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("Scratch file has not been acquired")
        return self._path

    @property
    def name(self) -> str:
        return str(self.path)

    @property
    def acquired(self) -> bool:
        return self._path is not None and not self._released

    def acquire(self) -> Path:
        """Create the file on first call; later calls return the same path."""
        if self._path is not None:
            return self._path

        fd, name = tempfile.mkstemp(
            prefix=self.prefix, suffix=self.suffix, dir=self.directory
        )
        os.close(fd)
        self._path = Path(name)
        self.registry.register(self)
        logger.debug(f"Created scratch file: {self._path}")
        return self._path

    async def write(self, text: str) -> None:
        """Replace the file content with ``text``."""
        async with aiofiles.open(self.acquire(), "w", encoding="utf-8") as f:
            await f.write(text)

    def matches(self, path: str) -> bool:
        """Whether ``path`` names this scratch file."""
        if self._path is None:
            return False
        return os.path.realpath(path) == os.path.realpath(self._path)

    def release(self) -> None:
        if self._path is None or self._released:
            return

        self._released = True
        self.registry.unregister(self)
        try:
            if self._path.exists():
                logger.debug(f"Deleting scratch file: {self._path}")
                self._path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete scratch file {self._path}: {e}")

    def __enter__(self) -> ScratchFile:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    async def __aenter__(self) -> ScratchFile:
        self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"ScratchFile({self._path!s})"
