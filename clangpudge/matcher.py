#!/usr/bin/env python3
"""
Declaration matching over a libclang translation unit.

Yields every free function, method, lambda and Objective-C method definition
that has a body, in pre-order. Block literals can be matched as well; they are
numbered per enclosing function the way clang numbers them for mangling.
"""

from collections.abc import Iterator
from enum import Enum

import clang.cindex as clang
from pydantic import BaseModel, PrivateAttr

CK = clang.CursorKind

CLASS_LIKE_KINDS = {
    CK.STRUCT_DECL,  # type: ignore
    CK.CLASS_DECL,  # type: ignore
    CK.UNION_DECL,  # type: ignore
    CK.CLASS_TEMPLATE,  # type: ignore
    CK.CLASS_TEMPLATE_PARTIAL_SPECIALIZATION,  # type: ignore
}

BODY_KINDS = {
    CK.COMPOUND_STMT,  # type: ignore
    CK.CXX_TRY_STMT,  # type: ignore
}

OBJC_METHOD_KINDS = {
    CK.OBJC_INSTANCE_METHOD_DECL,  # type: ignore
    CK.OBJC_CLASS_METHOD_DECL,  # type: ignore
}

# Member kinds whose classification does not depend on the semantic parent.
_MEMBER_KINDS = {
    CK.CXX_METHOD,  # type: ignore
    CK.CONVERSION_FUNCTION,  # type: ignore
    CK.CONSTRUCTOR,  # type: ignore
    CK.DESTRUCTOR,  # type: ignore
}


class DeclKind(str, Enum):
    FUNCTION = "function"
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    DESTRUCTOR = "destructor"
    OBJC_METHOD = "objc_method"
    BLOCK = "block"


class Declaration(BaseModel):
    """A matched definition together with what naming it requires."""

    cursor: clang.Cursor
    kind: DeclKind
    # Nearest enclosing function-like definition, set for blocks.
    enclosing: "Declaration | None" = None
    # 0-based position among the blocks of the same enclosing function.
    block_index: int = 0
    _blocks_seen: int = PrivateAttr(default=0)

    model_config = {"arbitrary_types_allowed": True}


def is_member(cursor: clang.Cursor) -> bool:
    parent = cursor.semantic_parent
    return parent is not None and parent.kind in CLASS_LIKE_KINDS


def has_body(cursor: clang.Cursor) -> bool:
    return any(child.kind in BODY_KINDS for child in cursor.get_children())


def block_has_body(cursor: clang.Cursor) -> bool:
    """Block bodies hang off the block expression or its unexposed block declaration."""
    for child in cursor.get_children():
        if child.kind in BODY_KINDS:
            return True
        if child.kind == CK.UNEXPOSED_DECL and has_body(child):  # type: ignore
            return True
    return False


def classify(cursor: clang.Cursor) -> DeclKind | None:
    """Kind of a function-like cursor, or None for anything else.

    A cursor is a method exactly when its semantic parent is a class, so
    free functions and methods never overlap.
    """
    kind = cursor.kind
    if kind == CK.CONSTRUCTOR:  # type: ignore
        return DeclKind.CONSTRUCTOR
    if kind == CK.DESTRUCTOR:  # type: ignore
        return DeclKind.DESTRUCTOR
    if kind in _MEMBER_KINDS:
        return DeclKind.METHOD
    if kind in OBJC_METHOD_KINDS:
        return DeclKind.OBJC_METHOD
    if kind in (CK.FUNCTION_DECL, CK.FUNCTION_TEMPLATE):  # type: ignore
        return DeclKind.METHOD if is_member(cursor) else DeclKind.FUNCTION
    if kind == CK.LAMBDA_EXPR:  # type: ignore
        # The body is the call operator of the closure class.
        return DeclKind.METHOD
    return None


def is_function_definition(cursor: clang.Cursor) -> bool:
    """True for a written definition with a body.

    Defaulted members get a body synthesized by Sema once they are used, so
    they are rejected explicitly along with deleted ones.
    """
    if cursor.kind == CK.LAMBDA_EXPR:  # type: ignore
        return has_body(cursor)
    if not cursor.is_definition() or not has_body(cursor):
        return False
    return not (cursor.is_default_method() or cursor.is_deleted_method())


def iter_definitions(
    root: clang.Cursor, include_blocks: bool = False
) -> Iterator[Declaration]:
    """Pre-order walk of `root` yielding function-like definitions with a body."""
    global_blocks = 0
    stack: list[tuple[clang.Cursor, Declaration | None]] = [(root, None)]

    while stack:
        cursor, enclosing = stack.pop()
        current = enclosing

        kind = classify(cursor)
        if kind is not None:
            if is_function_definition(cursor):
                current = Declaration(cursor=cursor, kind=kind)
                yield current
        elif cursor.kind == CK.BLOCK_EXPR and block_has_body(cursor):  # type: ignore
            # Nested blocks share the numbering of their enclosing function.
            if enclosing is not None:
                index = enclosing._blocks_seen
                enclosing._blocks_seen += 1
            else:
                index = global_blocks
                global_blocks += 1
            if include_blocks:
                yield Declaration(
                    cursor=cursor,
                    kind=DeclKind.BLOCK,
                    enclosing=enclosing,
                    block_index=index,
                )

        children = list(cursor.get_children())
        for child in reversed(children):
            stack.append((child, current))
