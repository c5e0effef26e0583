#!/usr/bin/env python3
"""
Frontend driver: compile commands in, parsed translation units out.

Reads compile commands from a compilation database (or uses fixed extra
flags), parses every requested source file with libclang and runs the
definition extractor over each translation unit.
"""

import logging
import os
import sys
from collections.abc import Iterator
from pathlib import Path

import clang.cindex as clang
from pydantic import BaseModel, Field
from tqdm import tqdm

from clangpudge.config import ExtractorConfig
from clangpudge.extractor import DefinitionExtractor
from clangpudge.names import NameResolver
from clangpudge.records import FileRecordSet

logger = logging.getLogger(__name__)

COMPILE_COMMANDS = "compile_commands.json"

# Flags whose value is a path, longest first so prefixes match correctly.
_PATH_FLAGS = (
    "-idirafter",
    "-isystem",
    "-include",
    "-imacros",
    "-iquote",
    "-I",
    "-F",
)
# Flags that may also be written joined to their value, e.g. `-Iinclude`.
_JOINED_PATH_FLAGS = ("-idirafter", "-isystem", "-iquote", "-I", "-F")


class FrontendError(RuntimeError):
    """Raised when the compilation database cannot be loaded."""


class ParseFailure(BaseModel):
    """A translation unit that failed to load or produced errors."""

    file_path: str
    messages: list[str]


class ExtractionRun(BaseModel):
    """Records collected over all translation units plus any failures."""

    records: FileRecordSet = Field(default_factory=FileRecordSet)
    failures: list[ParseFailure] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0


def configure_libclang(library_file: Path | None) -> None:
    """Point the bindings at an explicit libclang before first use."""
    if library_file is None or clang.Config.loaded:
        return
    clang.Config.set_library_file(str(library_file))


def find_compilation_database(start_path: Path) -> Path | None:
    """Nearest directory at or above `start_path` holding compile_commands.json."""
    current = Path(os.path.abspath(start_path))
    while True:
        if (current / COMPILE_COMMANDS).is_file():
            return current
        if current == current.parent:
            return None
        current = current.parent


def _absolute(value: str, directory: str) -> str:
    if os.path.isabs(value):
        return value
    return os.path.normpath(os.path.join(directory, value))


def _is_input_file(arg: str, directory: str, file_path: str) -> bool:
    if arg.startswith("-"):
        return False
    return os.path.abspath(os.path.join(directory, arg)) == os.path.abspath(file_path)


def compile_arguments(arguments: list[str], directory: str, file_path: str) -> list[str]:
    """Turn a database command line into arguments for `Index.parse`.

    Drops the compiler executable, the input file, `-c` and `-o <out>`, and
    makes relative include paths absolute against the command's directory.
    """
    result: list[str] = []
    args: Iterator[str] = iter(arguments[1:])
    for arg in args:
        if arg == "-c":
            continue
        if arg == "-o":
            next(args, None)
            continue
        if _is_input_file(arg, directory, file_path):
            continue
        if arg in _PATH_FLAGS:
            value = next(args, None)
            result.append(arg)
            if value is not None:
                result.append(_absolute(value, directory))
            continue
        joined = next(
            (flag for flag in _JOINED_PATH_FLAGS if arg.startswith(flag) and arg != flag),
            None,
        )
        if joined is not None:
            result.append(joined + _absolute(arg[len(joined) :], directory))
            continue
        result.append(arg)
    return result


class CompileCommandSource:
    """Compile arguments per source file, from a database or fixed flags."""

    def __init__(self, build_path: Path | None, extra_args: list[str] | None = None):
        self.build_path = build_path
        self.extra_args = list(extra_args or [])
        self.database = None
        if build_path is not None:
            try:
                self.database = clang.CompilationDatabase.fromDirectory(str(build_path))
            except clang.CompilationDatabaseError as e:
                raise FrontendError(
                    f"Could not load {COMPILE_COMMANDS} from {build_path}: {e}"
                ) from e

    def arguments_for(self, file_path: str) -> list[str]:
        if self.database is None:
            return list(self.extra_args)

        commands = self.database.getCompileCommands(file_path)
        if not commands:
            logger.warning("No compile command for %s, using extra arguments only", file_path)
            return list(self.extra_args)

        command = commands[0]
        arguments = compile_arguments(list(command.arguments), command.directory, file_path)
        return arguments + self.extra_args


def format_diagnostic(diagnostic: clang.Diagnostic) -> str:
    location = diagnostic.location
    file_name = location.file.name if location.file else "<unknown>"
    return f"{file_name}:{location.line}:{location.column}: {diagnostic.spelling}"


def parse_translation_unit(
    index: clang.Index, file_path: str, args: list[str]
) -> tuple[clang.TranslationUnit | None, list[str]]:
    """Parse one file; returns the unit (if any) and its error messages."""
    try:
        tu = index.parse(file_path, args=args)
    except clang.TranslationUnitLoadError as e:
        return None, [f"{file_path}: {e}"]

    errors = [
        format_diagnostic(d)
        for d in tu.diagnostics
        if d.severity >= clang.Diagnostic.Error
    ]
    return tu, errors


def run_extraction(config: ExtractorConfig) -> ExtractionRun:
    """Parse every source file in `config` and collect definition records."""
    configure_libclang(config.libclang_file)

    source_files = config.absolute_source_files()
    build_path = config.build_path
    if build_path is None and source_files:
        build_path = find_compilation_database(Path(source_files[0]).parent)
        if build_path is not None:
            logger.info("Using compilation database in %s", build_path)

    commands = CompileCommandSource(build_path, config.extra_args)
    extractor = DefinitionExtractor(
        source_files,
        resolver=NameResolver(plain_function_names=config.plain_function_names),
        include_blocks=config.include_blocks,
    )
    index = clang.Index.create()
    run = ExtractionRun()

    for file_path in tqdm(
        source_files,
        desc="Parsing",
        unit="tu",
        file=sys.stderr,
        disable=not config.progress,
    ):
        tu, errors = parse_translation_unit(index, file_path, commands.arguments_for(file_path))
        if tu is not None:
            # Units with errors still contribute whatever was parsed.
            run.records.merge(extractor.extract_translation_unit(tu))
        if errors:
            logger.error("Failed to process %s (%d errors)", file_path, len(errors))
            run.failures.append(ParseFailure(file_path=file_path, messages=errors))

    return run
