#!/usr/bin/env python3
"""Command line entry point: extract definitions and write the JSON document."""

import sys
from pathlib import Path

import click

from clangpudge.config import ExtractorConfig
from clangpudge.console import Console
from clangpudge.emitter import emit
from clangpudge.frontend import FrontendError, run_extraction


@click.command()
@click.argument("sources", nargs=-1, type=click.Path(dir_okay=False))
@click.option(
    "-p",
    "--build-path",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing compile_commands.json",
)
@click.option(
    "--extra-arg",
    "extra_args",
    multiple=True,
    help="Additional argument appended to every compile command",
)
@click.option(
    "--output-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="JSON file to store output (defaults to stdout)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON or YAML configuration file",
)
@click.option(
    "--plain-function-names",
    is_flag=True,
    help="Record free functions by their source identifier",
)
@click.option("--include-blocks", is_flag=True, help="Also record block literals")
@click.option(
    "--libclang",
    "libclang_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to the libclang shared library",
)
@click.option("--no-progress", is_flag=True, help="Hide the progress bar")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(
    sources: tuple[str, ...],
    build_path: Path | None,
    extra_args: tuple[str, ...],
    output_file: Path | None,
    config_path: Path | None,
    plain_function_names: bool,
    include_blocks: bool,
    libclang_file: Path | None,
    no_progress: bool,
    verbose: bool,
):
    """Map each function definition in SOURCES to its link name and line range."""
    console = Console()
    console.setup_logging(verbose)

    config = ExtractorConfig.load_from_file(config_path) if config_path else ExtractorConfig()
    config = config.with_overrides(
        source_files=list(sources) or None,
        build_path=build_path,
        extra_args=list(extra_args) or None,
        output_file=output_file,
        plain_function_names=True if plain_function_names else None,
        include_blocks=True if include_blocks else None,
        libclang_file=libclang_file,
        progress=False if no_progress else None,
    )
    if not config.source_files:
        raise click.UsageError("No source files given")

    try:
        run = run_extraction(config)
    except FrontendError as e:
        raise click.ClickException(str(e)) from e

    console.report_failures(run.failures)
    emit(run.records, config.output_file)
    sys.exit(run.exit_code)


if __name__ == "__main__":
    main()
