#!/usr/bin/env python3
"""
Spelling locations for cursors.

The Python bindings only expose expansion locations, so the spelling variant
is read through libclang's `clang_getSpellingLocation` with the same ctypes
conventions the bindings use for `clang_getInstantiationLocation`.
"""

from ctypes import POINTER, byref, c_uint

import clang.cindex as clang
from pydantic import BaseModel

_spelling_location_fn = None


class SourcePosition(BaseModel):
    """A file/line/column triple; `file` is None for locations without a file."""

    file: str | None
    line: int
    column: int


def _spelling_location():
    global _spelling_location_fn
    if _spelling_location_fn is None:
        fn = clang.conf.lib.clang_getSpellingLocation
        fn.argtypes = [
            clang.SourceLocation,
            POINTER(clang.c_object_p),
            POINTER(c_uint),
            POINTER(c_uint),
            POINTER(c_uint),
        ]
        fn.restype = None
        _spelling_location_fn = fn
    return _spelling_location_fn


def spelling_position(location: clang.SourceLocation) -> SourcePosition:
    """Spelling position as libclang reports it.

    Tokens from macro arguments resolve to where they are written in the
    file; tokens from a macro body resolve to where the macro is expanded.
    """
    f = clang.c_object_p()
    line, column, offset = c_uint(), c_uint(), c_uint()
    _spelling_location()(location, byref(f), byref(line), byref(column), byref(offset))
    file_name = clang.File(f).name if f else None
    return SourcePosition(file=file_name, line=int(line.value), column=int(column.value))


def defining_file(cursor: clang.Cursor) -> str | None:
    """File in which the declaration's name token is spelled."""
    return spelling_position(cursor.location).file


def line_range(cursor: clang.Cursor) -> tuple[int, int]:
    """1-based first and last line of the cursor's full extent."""
    extent = cursor.extent
    start = spelling_position(extent.start).line
    end = spelling_position(extent.end).line
    if start < 1 or start > end:
        # Both ends spelled in unrelated macro bodies; use where they expand.
        start, end = extent.start.line, extent.end.line
    return start, end
