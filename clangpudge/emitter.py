#!/usr/bin/env python3

import json
from pathlib import Path

import click

from clangpudge.records import FileRecordSet


def render(records: FileRecordSet) -> str:
    """JSON document with sorted keys so identical input gives identical output."""
    return json.dumps(records.to_document(), indent=2, sort_keys=True)


def emit(records: FileRecordSet, output_file: Path | None = None) -> None:
    """Write the document to `output_file`, or to stdout when it is None."""
    document = render(records)
    if output_file is None:
        click.echo(document)
        return
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(document, encoding="utf-8")
