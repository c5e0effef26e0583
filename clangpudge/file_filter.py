#!/usr/bin/env python3

from collections.abc import Iterable

import clang.cindex as clang

from clangpudge.locations import defining_file


class SourceFileSet:
    """Caller-specified files whose definitions are kept.

    Paths are compared exactly as given: no symlink resolution, case folding
    or relative/absolute reconciliation.
    """

    def __init__(self, paths: Iterable[str]):
        self._paths = frozenset(str(path) for path in paths)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self):
        return iter(sorted(self._paths))

    def admit(self, cursor: clang.Cursor) -> str | None:
        """Defining file of `cursor` if it is in the set, else None."""
        file_path = defining_file(cursor)
        if file_path is not None and file_path in self._paths:
            return file_path
        return None
