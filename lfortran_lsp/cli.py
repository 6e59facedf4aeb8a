#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Command-line interface for the LFortran compiler accessor.

Runs one accessor operation against a Fortran file and prints the result as
JSON, the way a language server would send it.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger
from lsprotocol.converters import get_converter

from .accessor import LFortranAccessor
from .config import LFortranSettings, load_settings
from .core_types import ConfigurationError
from .logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lfortran-lsp-accessor",
        description="Query LFortran the way the language server does",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print the compiler version
  lfortran-lsp-accessor version

  # List the symbols of a file, searching ./include for modules
  lfortran-lsp-accessor symbols main.f90 -I include

  # Find the definition of the name at line 10, column 4 (0-based)
  lfortran-lsp-accessor lookup main.f90 --line 10 --column 4

  # Rename the symbol at that position
  lfortran-lsp-accessor rename main.f90 --line 10 --column 4 --new-name total
""",
    )

    parser.add_argument("--settings", type=Path, help="JSON settings file")
    parser.add_argument("--lfortran-path", help="Path to the lfortran executable")
    parser.add_argument(
        "--include-path",
        "-I",
        action="append",
        dest="include_paths",
        default=[],
        help="Add include directory",
    )
    parser.add_argument(
        "--flag",
        action="append",
        dest="flags",
        default=[],
        help="Extra flag passed to lfortran (repeatable)",
    )
    parser.add_argument(
        "--max-problems", type=int, help="Maximum number of diagnostics reported"
    )
    parser.add_argument(
        "--timeout", type=float, help="Seconds before an invocation is killed"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("version", help="Print the lfortran version")

    symbols = subparsers.add_parser("symbols", help="List document symbols")
    symbols.add_argument("file", type=Path, help="Fortran source file")

    errors = subparsers.add_parser("errors", help="List diagnostics")
    errors.add_argument("file", type=Path, help="Fortran source file")

    for name, help_text in (
        ("lookup", "Find the definition of the name at a position"),
        ("rename", "Rename the symbol at a position"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("file", type=Path, help="Fortran source file")
        sub.add_argument("--line", type=int, required=True, help="0-based line")
        sub.add_argument("--column", type=int, required=True, help="0-based column")
        if name == "rename":
            sub.add_argument("--new-name", required=True, help="Replacement name")

    return parser


def resolve_settings(args: argparse.Namespace) -> LFortranSettings:
    """Settings from ``--settings``, overridden by individual options."""
    settings = load_settings(args.settings) if args.settings else LFortranSettings()

    if args.lfortran_path:
        settings.compiler.lfortran_path = args.lfortran_path
    extra_flags = [f"-I{path}" for path in args.include_paths] + list(args.flags)
    if extra_flags:
        settings.compiler.flags = [*settings.compiler.flags, *extra_flags]
    if args.max_problems is not None:
        settings.max_number_of_problems = args.max_problems
    if args.timeout is not None:
        settings.compiler.timeout = args.timeout

    return settings


async def run_command(args: argparse.Namespace, settings: LFortranSettings) -> Any:
    async with LFortranAccessor() as accessor:
        if args.command == "version":
            return await accessor.version(settings)

        text = args.file.read_text(encoding="utf-8")
        uri = args.file.resolve().as_uri()

        if args.command == "symbols":
            return await accessor.show_document_symbols(uri, text, settings)
        if args.command == "errors":
            return await accessor.show_errors(uri, text, settings)
        if args.command == "lookup":
            return await accessor.lookup_name(
                uri, text, args.line, args.column, settings
            )
        return await accessor.rename_workspace_edit(
            uri, text, args.line, args.column, args.new_name, settings
        )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function for command-line usage.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    try:
        settings = resolve_settings(args)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"Invalid option: {e}")
        return 1

    file_path: Optional[Path] = getattr(args, "file", None)
    if file_path is not None and not file_path.is_file():
        logger.error(f"File not found: {file_path}")
        return 1

    try:
        result = asyncio.run(run_command(args, settings))
    except UnicodeDecodeError as e:
        logger.error(f"File is not valid UTF-8: {file_path}: {e}")
        return 1

    if isinstance(result, str):
        print(result, end="" if result.endswith("\n") else "\n")
    else:
        print(json.dumps(get_converter().unstructure(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
