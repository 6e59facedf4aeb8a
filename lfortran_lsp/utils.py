#!/usr/bin/env python3
"""
Process execution and executable lookup utilities.
"""

from __future__ import annotations

import asyncio
import shlex
import shutil
import signal
import stat
import time
from typing import Callable, List, Optional

import aiofiles.os
from loguru import logger

from .core_types import ErrorKind, InvocationResult, PathLike

# Locates an executable by name, returning None when it is not found.
ExecutableResolver = Callable[[str], Optional[str]]


def find_executable(name: str) -> Optional[str]:
    """Find an executable on the system PATH."""
    return shutil.which(name)


async def is_executable_file(path: PathLike) -> bool:
    """
    Check that ``path`` exists, is a regular file and has an execute bit set.

    A missing path is not an error; other OS errors propagate.
    """
    try:
        st = await aiofiles.os.stat(path)
    except FileNotFoundError:
        return False
    except NotADirectoryError:
        return False
    return stat.S_ISREG(st.st_mode) and (st.st_mode & 0o111) != 0


def _signal_name(returncode: Optional[int]) -> Optional[str]:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return str(-returncode)


class ProcessManager:
    """Runs external commands without raising."""

    @staticmethod
    async def run_command_async(
        command: List[str],
        timeout: Optional[float] = None,
    ) -> InvocationResult:
        """
        Run a command asynchronously, capturing its output.

        Launch failures and timeouts are reported on the returned result
        instead of being raised. A timed out process is killed.

        Args:
            command: Command and arguments to execute
            timeout: Seconds to wait before killing the process

        Returns:
            InvocationResult with execution details
        """
        start_time = time.perf_counter()

        logger.debug(
            f"Executing command: {shlex.join(command)}",
            extra={"command": command, "timeout": timeout},
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
            )
        except FileNotFoundError:
            return InvocationResult(
                invocation_error=f"Command not found: {command[0]}",
                command=command,
                execution_time=time.perf_counter() - start_time,
                error_kind=ErrorKind.EXECUTABLE_NOT_FOUND,
            )
        except OSError as e:
            return InvocationResult(
                invocation_error=f"Failed to launch {command[0]}: {e}",
                command=command,
                execution_time=time.perf_counter() - start_time,
                error_kind=ErrorKind.LAUNCH_FAILURE,
            )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError:
            # Partial output is dropped: a grandchild may keep the pipes open.
            process.kill()
            await process.wait()
            execution_time = time.perf_counter() - start_time
            logger.error(f"Command timed out after {timeout}s: {shlex.join(command)}")
            return InvocationResult(
                signal=_signal_name(process.returncode),
                invocation_error=f"Command timed out after {timeout}s",
                command=command,
                execution_time=execution_time,
                timed_out=True,
                error_kind=ErrorKind.TIMEOUT,
            )

        execution_time = time.perf_counter() - start_time
        returncode = process.returncode
        result = InvocationResult(
            exit_status=returncode if returncode is not None and returncode >= 0 else None,
            signal=_signal_name(returncode),
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            command=command,
            execution_time=execution_time,
        )

        logger.debug(
            f"`{shlex.join(command)}` yielded status={result.exit_status}, "
            f"signal={result.signal} in {execution_time:.3f}s"
        )
        return result
