#!/usr/bin/env python3
"""
Invocation of the lfortran command-line interface.
"""

from __future__ import annotations

from typing import List, Optional

from loguru import logger

from .config import LFortranSettings
from .core_types import (
    DEFAULT_EXECUTABLE,
    ExecutableNotFoundError,
    InvocationResult,
)
from .scratch import ScratchFile
from .utils import ExecutableResolver, ProcessManager, find_executable, is_executable_file


def select_output(
    result: InvocationResult,
    default: str = "",
    empty_result_is_success: bool = False,
) -> str:
    """
    Pick the text the caller should parse from a finished invocation.

    stderr wins whenever it has content, since ``--show-errors`` reports
    there even on success; stdout comes next. An empty response is a valid
    result only when ``empty_result_is_success`` is set.
    """
    if result.invocation_error is not None:
        if result.stderr:
            return result.stderr
        logger.error(
            f"Failed to get stderr from lfortran: {result.invocation_error}"
        )
        return default
    if result.stderr:
        return result.stderr
    if result.stdout:
        return result.stdout
    if empty_result_is_success:
        logger.debug("lfortran responded successfully with an empty string.")
        return ""
    logger.error("Failed to get stdout from lfortran")
    return default


class CompilerInvoker:
    """Runs lfortran on a scratch file and returns its textual response."""

    def __init__(
        self,
        resolver: ExecutableResolver = find_executable,
        process_manager: Optional[ProcessManager] = None,
    ) -> None:
        self.resolver = resolver
        self.process_manager = process_manager or ProcessManager()

    async def resolve_executable(self, settings: LFortranSettings) -> str:
        """
        Determine the executable to run.

        The configured path is used when it names an executable file; the
        bare default name, or a path that fails the check, falls back to a
        PATH search.

        Raises:
            ExecutableNotFoundError: If no executable can be located.
        """
        lfortran_path: Optional[str] = settings.compiler.lfortran_path
        if lfortran_path == DEFAULT_EXECUTABLE or not (
            lfortran_path and await is_executable_file(lfortran_path)
        ):
            lfortran_path = self.resolver(DEFAULT_EXECUTABLE)
            logger.debug(f"lfortran_path = {lfortran_path}")

        if lfortran_path is None:
            raise ExecutableNotFoundError(
                "Failed to locate lfortran, please specify its path in the configuration.",
                configured_path=settings.compiler.lfortran_path,
            )
        return lfortran_path

    def build_command(
        self,
        executable: str,
        settings: LFortranSettings,
        flags: List[str],
        scratch: ScratchFile,
    ) -> List[str]:
        return [executable, *flags, *settings.compiler.flags, scratch.name]

    async def run(
        self,
        settings: LFortranSettings,
        flags: List[str],
        text: str,
        scratch: ScratchFile,
    ) -> InvocationResult:
        """
        Write ``text`` to ``scratch`` and run lfortran on it.

        Raises:
            ExecutableNotFoundError: If no executable can be located.
            OSError: If the scratch file cannot be created or written.
        """
        executable = await self.resolve_executable(settings)
        scratch.acquire()
        await scratch.write(text)
        command = self.build_command(executable, settings, flags, scratch)
        return await self.process_manager.run_command_async(
            command, timeout=settings.compiler.timeout
        )

    async def invoke(
        self,
        settings: LFortranSettings,
        flags: List[str],
        text: str,
        scratch: ScratchFile,
        default: str = "",
        empty_result_is_success: bool = False,
    ) -> str:
        """
        Run lfortran and return its response, or ``default`` on any failure.

        Never raises; every failure is logged and degrades to ``default``.
        """
        try:
            result = await self.run(settings, flags, text, scratch)
        except ExecutableNotFoundError as e:
            logger.error(str(e))
            return default
        except Exception as e:
            logger.error(f"Failed to invoke lfortran: {e}")
            return default

        if result.error_kind is not None:
            logger.error(
                f"lfortran invocation failed ({result.error_kind.value}): "
                f"{result.invocation_error}"
            )
        elif result.signal is not None:
            logger.error(f"lfortran was terminated by {result.signal}")

        logger.trace(f"Invocation result: {result.to_dict()}")
        return select_output(result, default, empty_result_is_success)
