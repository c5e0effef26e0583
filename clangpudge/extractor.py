#!/usr/bin/env python3
"""
Definition extraction over parsed translation units.

Walks a translation unit, keeps the definitions spelled in the requested
files and records each one's link name and line range.
"""

import logging
from collections.abc import Iterable

import clang.cindex as clang

from clangpudge.file_filter import SourceFileSet
from clangpudge.locations import line_range
from clangpudge.matcher import Declaration, iter_definitions
from clangpudge.names import NameResolver
from clangpudge.records import FileRecordSet, Record

logger = logging.getLogger(__name__)


class DefinitionExtractor:
    """Collects name and line-range records for definitions in a fixed file set."""

    def __init__(
        self,
        source_files: Iterable[str] | SourceFileSet,
        resolver: NameResolver | None = None,
        include_blocks: bool = False,
    ):
        if not isinstance(source_files, SourceFileSet):
            source_files = SourceFileSet(source_files)
        self.source_files = source_files
        self.resolver = resolver or NameResolver()
        self.include_blocks = include_blocks

    def record_for(self, decl: Declaration) -> Record:
        start, end = line_range(decl.cursor)
        return Record(name=self.resolver.resolve(decl), start=start, end=end)

    def extract(self, root: clang.Cursor) -> FileRecordSet:
        """Records for every definition under `root`, in visitation order."""
        records = FileRecordSet()
        for decl in iter_definitions(root, include_blocks=self.include_blocks):
            file_path = self.source_files.admit(decl.cursor)
            if file_path is None:
                continue
            records.add(file_path, self.record_for(decl))
        logger.debug("Collected %d records under %s", len(records), root.spelling)
        return records

    def extract_translation_unit(self, tu: clang.TranslationUnit) -> FileRecordSet:
        return self.extract(tu.cursor)
