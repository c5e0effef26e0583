#!/usr/bin/env python3
"""
Link-time names for matched declarations.

Each declaration kind has its own encoder. The frontend's mangled name
decides whether ABI mangling applies at all: a name that does not carry an
Itanium or Microsoft encoding means C linkage (or another no-mangle
marker), and the plain source identifier is used instead unless an asm
label renames the symbol.
"""

import logging
from ctypes import POINTER, Structure, c_char_p, c_uint, c_void_p

import clang.cindex as clang

from clangpudge.mangling import (
    MICROSOFT_PREFIX,
    ManglingError,
    block_invoke_name,
    complete_structor_name,
    complete_variant,
    global_block_name,
    is_mangled,
    objc_method_name,
    objc_method_source_name,
    strip_global_prefix,
)
from clangpudge.matcher import CK, Declaration, DeclKind

logger = logging.getLogger(__name__)

_manglings_fns = None


class _CXString(Structure):
    # Borrowed view of a CXString; the owning set frees it.
    _fields_ = [("data", c_void_p), ("private_flags", c_uint)]


class _CXStringSet(Structure):
    _fields_ = [("strings", POINTER(_CXString)), ("count", c_uint)]


def _manglings_api():
    # Fresh function pointers so the argtypes the bindings register stay untouched.
    global _manglings_fns
    if _manglings_fns is None:
        lib = clang.conf.lib
        get_manglings = lib["clang_Cursor_getCXXManglings"]
        get_manglings.argtypes = [clang.Cursor]
        get_manglings.restype = POINTER(_CXStringSet)
        get_c_string = lib["clang_getCString"]
        get_c_string.argtypes = [_CXString]
        get_c_string.restype = c_char_p
        dispose = lib["clang_disposeStringSet"]
        dispose.argtypes = [POINTER(_CXStringSet)]
        dispose.restype = None
        _manglings_fns = (get_manglings, get_c_string, dispose)
    return _manglings_fns


def cxx_manglings(cursor: clang.Cursor) -> list[str]:
    """Every symbol libclang emits for a C++ declaration, one per structor variant."""
    get_manglings, get_c_string, dispose = _manglings_api()
    string_set = get_manglings(cursor)
    if not string_set:
        return []
    try:
        strings = string_set.contents
        names = []
        for i in range(strings.count):
            value = get_c_string(strings.strings[i])
            if value:
                names.append(value.decode("utf-8"))
        return names
    finally:
        dispose(string_set)


def frontend_name(cursor: clang.Cursor) -> str:
    """Name libclang assigns, without the data-layout global prefix."""
    return strip_global_prefix(cursor.mangled_name or "")


def objc_method_parts(cursor: clang.Cursor) -> tuple[bool, str, str | None] | None:
    """(is_instance, class name, category) of an Objective-C method definition."""
    container = cursor.semantic_parent
    if container is None:
        return None
    instance = cursor.kind == CK.OBJC_INSTANCE_METHOD_DECL  # type: ignore
    if container.kind == CK.OBJC_IMPLEMENTATION_DECL:  # type: ignore
        return instance, container.spelling, None
    if container.kind == CK.OBJC_CATEGORY_IMPL_DECL:  # type: ignore
        for child in container.get_children():
            if child.kind == CK.OBJC_CLASS_REF:  # type: ignore
                return instance, child.spelling, container.spelling
    return None


class NameResolver:
    """Computes the symbol name the linker uses for a declaration."""

    def __init__(self, plain_function_names: bool = False):
        # Record free functions by their source identifier even when mangled.
        self.plain_function_names = plain_function_names
        self._encoders = {
            DeclKind.OBJC_METHOD: self._objc_method,
            DeclKind.BLOCK: self._block,
            DeclKind.CONSTRUCTOR: self._constructor,
            DeclKind.DESTRUCTOR: self._destructor,
            DeclKind.FUNCTION: self._function,
            DeclKind.METHOD: self._named,
        }

    def resolve(self, decl: Declaration) -> str:
        """Link name of `decl`, or "" when it cannot be determined."""
        encoder = self._encoders.get(decl.kind)
        if encoder is None:
            logger.debug("No encoder for declaration kind %s", decl.kind)
            return ""
        name = encoder(decl)
        if not name:
            logger.debug(
                "Unresolved name for %s '%s' at %s",
                decl.kind.value,
                decl.cursor.spelling,
                decl.cursor.location,
            )
        return name

    def _named(self, decl: Declaration) -> str:
        name = frontend_name(decl.cursor)
        if not name:
            return ""
        if is_mangled(name):
            return name
        spelling = decl.cursor.spelling
        if name in (spelling, "_" + spelling):
            return spelling
        # An asm label renames the symbol outright.
        return name

    def _function(self, decl: Declaration) -> str:
        if self.plain_function_names:
            return decl.cursor.spelling
        return self._named(decl)

    def _structor(self, decl: Declaration, destructor: bool) -> str:
        name = frontend_name(decl.cursor)
        if not is_mangled(name):
            return self._named(decl)
        if not name.startswith(MICROSOFT_PREFIX):
            manglings = [strip_global_prefix(m) for m in cxx_manglings(decl.cursor)]
            complete = complete_variant(manglings, destructor)
            if complete:
                return complete
        try:
            return complete_structor_name(name, destructor)
        except ManglingError as e:
            logger.error(
                "No complete-object name for '%s' at %s, keeping %s: %s",
                decl.cursor.spelling,
                decl.cursor.location,
                name,
                e,
            )
            return name

    def _constructor(self, decl: Declaration) -> str:
        return self._structor(decl, destructor=False)

    def _destructor(self, decl: Declaration) -> str:
        return self._structor(decl, destructor=True)

    def _objc_method(self, decl: Declaration) -> str:
        name = decl.cursor.mangled_name
        if name:
            return name
        parts = objc_method_parts(decl.cursor)
        if parts is None:
            return ""
        instance, class_name, category = parts
        return objc_method_name(instance, class_name, decl.cursor.spelling, category)

    def _block(self, decl: Declaration) -> str:
        enclosing = decl.enclosing
        if enclosing is None:
            return global_block_name(decl.block_index)

        if enclosing.kind == DeclKind.OBJC_METHOD:
            parts = objc_method_parts(enclosing.cursor)
            if parts is None:
                return ""
            instance, class_name, _ = parts
            outer = objc_method_source_name(instance, class_name, enclosing.cursor.spelling)
        elif enclosing.kind == DeclKind.FUNCTION:
            outer = self._named(enclosing)
        else:
            outer = self.resolve(enclosing)

        if not outer:
            return ""
        return block_invoke_name(outer, decl.block_index)
