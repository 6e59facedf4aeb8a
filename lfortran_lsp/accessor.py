#!/usr/bin/env python3
"""
Compiler accessor: language-server requests answered by running lfortran.

Every operation follows the same pipeline. The document text is written to a
fresh scratch file, lfortran is run on it with mode-specific flags, the
response is decoded, reported filenames are resolved back to documents, and
positions are shifted from 1-based to 0-based. Failures never escape an
operation; they are logged and produce an empty result.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Set, Tuple

from loguru import logger
from lsprotocol import types as lsp

from .config import LFortranSettings
from .coordinates import to_diagnostic_range, to_range
from .core_types import (
    DIAGNOSTIC_SOURCE,
    MalformedResponseError,
    RawDiagnostic,
    RawEdit,
    RawSymbol,
)
from .invoker import CompilerInvoker
from .parser import ResponseParser
from .paths import resolve_path, to_document_uri
from .scratch import CleanupRegistry, ScratchFile, default_registry
from .utils import ExecutableResolver, find_executable


def position_flags(line: int, column: int) -> List[str]:
    """Flags addressing a 0-based protocol position in lfortran's 1-based terms."""
    return [f"--line={line + 1}", f"--column={column + 1}"]


class LFortranAccessor:
    """
    Interacts with LFortran through its command-line interface.

    Each invocation gets its own scratch file, so concurrent requests on one
    accessor do not share input. ``start`` hooks process exit, SIGINT and
    uncaught exceptions so scratch files are removed on every exit path;
    ``stop`` releases whatever this accessor still holds.
    """

    def __init__(
        self,
        resolver: ExecutableResolver = find_executable,
        invoker: Optional[CompilerInvoker] = None,
        registry: Optional[CleanupRegistry] = None,
        scratch_dir: Optional[str] = None,
    ) -> None:
        self.invoker = invoker or CompilerInvoker(resolver=resolver)
        self.registry = registry if registry is not None else default_registry
        self.scratch_dir = scratch_dir
        self._scratch_files: Set[ScratchFile] = set()
        self._installed_hooks = False

    # Lifecycle

    def start(self) -> None:
        """Take a reference on the registry's cleanup hooks."""
        if not self._installed_hooks:
            self.registry.install()
            self._installed_hooks = True

    def stop(self) -> None:
        """Release every scratch file still owned by this accessor."""
        for scratch in list(self._scratch_files):
            scratch.release()
        self._scratch_files.clear()

    def dispose(self) -> None:
        self.stop()
        if self._installed_hooks:
            self.registry.uninstall()
            self._installed_hooks = False

    async def __aenter__(self) -> LFortranAccessor:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        self.dispose()

    @property
    def live_scratch_files(self) -> Set[ScratchFile]:
        return set(self._scratch_files)

    # Invocation

    @asynccontextmanager
    async def _invocation(
        self,
        settings: LFortranSettings,
        flags: List[str],
        text: str,
        default: str = "[]",
        empty_result_is_success: bool = False,
    ) -> AsyncIterator[Tuple[str, ScratchFile]]:
        """Run lfortran on ``text``; the scratch file lives until the block exits."""
        scratch = ScratchFile(directory=self.scratch_dir, registry=self.registry)
        self._scratch_files.add(scratch)
        try:
            output = await self.invoker.invoke(
                settings, flags, text, scratch, default, empty_result_is_success
            )
            yield output, scratch
        finally:
            self._scratch_files.discard(scratch)
            scratch.release()

    def _target_uri(
        self,
        filename: Optional[str],
        uri: str,
        settings: LFortranSettings,
        scratch: ScratchFile,
        resolved: Optional[Dict[str, str]] = None,
    ) -> str:
        if not filename:
            return uri
        path = resolve_path(filename, settings.compiler.flags, resolved)
        return to_document_uri(path, uri, scratch)

    # Operations

    async def version(self, settings: LFortranSettings) -> str:
        async with self._invocation(settings, ["--version"], "", "") as (output, _):
            return output

    async def show_document_symbols(
        self, uri: str, text: str, settings: LFortranSettings
    ) -> List[lsp.SymbolInformation]:
        """Looks up all the symbols in the given document."""
        flags = ["--show-document-symbols", "--continue-compilation"]
        symbols: List[lsp.SymbolInformation] = []

        async with self._invocation(settings, flags, text) as (stdout, scratch):
            try:
                records = ResponseParser().parse_symbols(stdout)
            except MalformedResponseError as e:
                logger.warning(f"Failed to parse response: {stdout}")
                logger.warning(str(e))
                records = []

            resolved: Dict[str, str] = {}
            for record in records:
                try:
                    symbols.append(
                        self._to_symbol(record, uri, settings, scratch, resolved)
                    )
                except ValueError as e:
                    logger.warning(f"Skipping symbol {record.name!r}: {e}")

        return symbols

    def _to_symbol(
        self,
        record: RawSymbol,
        uri: str,
        settings: LFortranSettings,
        scratch: ScratchFile,
        resolved: Dict[str, str],
    ) -> lsp.SymbolInformation:
        target = self._target_uri(record.filename, uri, settings, scratch, resolved)
        return lsp.SymbolInformation(
            name=record.name,
            kind=lsp.SymbolKind(record.kind),
            location=lsp.Location(uri=target, range=to_range(record.location.range)),
            container_name=record.container_name,
        )

    async def lookup_name(
        self,
        uri: str,
        text: str,
        line: int,
        column: int,
        settings: LFortranSettings,
    ) -> List[lsp.LocationLink]:
        """
        Looks up the definition of the symbol at the given 0-based position.

        At most one definition is returned: the first one lfortran reports.
        """
        flags = [
            "--lookup-name",
            *position_flags(line, column),
            "--continue-compilation",
        ]
        definitions: List[lsp.LocationLink] = []

        async with self._invocation(settings, flags, text) as (stdout, scratch):
            try:
                records = ResponseParser().parse_definitions(stdout)
            except MalformedResponseError as e:
                logger.warning(
                    f"Failed to lookup name at line={line}, column={column}: {e}"
                )
                records = []

            for record in records[:1]:
                try:
                    target_range = to_range(record.location.range)
                    definitions.append(
                        lsp.LocationLink(
                            target_uri=self._target_uri(
                                record.filename, uri, settings, scratch
                            ),
                            target_range=target_range,
                            target_selection_range=target_range,
                        )
                    )
                except ValueError as e:
                    logger.warning(f"Skipping definition: {e}")

        return definitions

    async def show_errors(
        self, uri: str, text: str, settings: LFortranSettings
    ) -> List[lsp.Diagnostic]:
        """Identifies the errors and warnings in the given document."""
        flags = ["--show-errors", "--continue-compilation"]
        diagnostics: List[lsp.Diagnostic] = []

        async with self._invocation(
            settings, flags, text, "", empty_result_is_success=True
        ) as (stdout, _):
            if not stdout:
                return diagnostics

            parser = ResponseParser(
                repair_diagnostics=settings.compiler.repair_malformed_diagnostics
            )
            try:
                results = parser.parse_diagnostics(stdout)
            except MalformedResponseError as e:
                logger.error("Failed to show errors")
                logger.error(f"Failed to parse response: {stdout}")
                logger.error(str(e))
                return diagnostics

        for record in results.diagnostics[: settings.max_number_of_problems]:
            try:
                diagnostics.append(self._to_diagnostic(record))
            except ValueError as e:
                logger.warning(f"Skipping diagnostic {record.message!r}: {e}")

        return diagnostics

    def _to_diagnostic(self, record: RawDiagnostic) -> lsp.Diagnostic:
        return lsp.Diagnostic(
            range=to_diagnostic_range(record.range),
            message=record.message,
            severity=(
                lsp.DiagnosticSeverity(record.severity)
                if record.severity is not None
                else None
            ),
            code=record.code,
            source=DIAGNOSTIC_SOURCE,
        )

    async def _rename_records(
        self,
        uri: str,
        text: str,
        line: int,
        column: int,
        new_name: str,
        settings: LFortranSettings,
    ) -> AsyncIterator[Tuple[str, lsp.TextEdit]]:
        flags = [
            "--rename-symbol",
            *position_flags(line, column),
            "--continue-compilation",
            f"--new-name={new_name}",
        ]

        async with self._invocation(settings, flags, text) as (stdout, scratch):
            try:
                records: List[RawEdit] = ResponseParser().parse_edits(stdout)
            except MalformedResponseError as e:
                logger.warning(
                    f"Failed to rename symbol at line={line}, column={column}: {e}"
                )
                records = []

            resolved: Dict[str, str] = {}
            for record in records:
                if record.location is None:
                    continue
                try:
                    edit = lsp.TextEdit(
                        range=to_range(record.location.range), new_text=new_name
                    )
                except ValueError as e:
                    logger.warning(f"Skipping edit: {e}")
                    continue
                target = self._target_uri(
                    record.filename, uri, settings, scratch, resolved
                )
                yield target, edit

    async def rename_symbol(
        self,
        uri: str,
        text: str,
        line: int,
        column: int,
        new_name: str,
        settings: LFortranSettings,
    ) -> List[lsp.TextEdit]:
        """Edits renaming every occurrence of the symbol at the given position."""
        return [
            edit
            async for _, edit in self._rename_records(
                uri, text, line, column, new_name, settings
            )
        ]

    async def rename_workspace_edit(
        self,
        uri: str,
        text: str,
        line: int,
        column: int,
        new_name: str,
        settings: LFortranSettings,
    ) -> lsp.WorkspaceEdit:
        """The rename edits grouped by the document each one applies to."""
        changes: Dict[str, List[lsp.TextEdit]] = {}
        async for target, edit in self._rename_records(
            uri, text, line, column, new_name, settings
        ):
            changes.setdefault(target, []).append(edit)
        return lsp.WorkspaceEdit(changes=changes)
