#!/usr/bin/env python3
"""
ABI name encoders that libclang does not expose directly.

libclang reports one mangled name per declaration. For constructors and
destructors that is not necessarily the complete-object variant, so the
Itanium encoding is scanned far enough to find the structor token of the
outermost entity and rewrite its variant digit. The Objective-C and block
encoders reproduce the names clang's mangle context assigns.
"""

ITANIUM_PREFIX = "_Z"
MICROSOFT_PREFIX = "?"

# Itanium <builtin-type> codes that are a single lowercase letter.
_BUILTIN_TYPES = frozenset("vwbcahstijlmxynofdegz")
# St Sa Sb Ss Si So Sd
_STD_SUBSTITUTIONS = frozenset("tabsiod")
# Dd De Df Dh Di Ds Du Da Dc Dn
_D_BUILTIN_TYPES = frozenset("defhisuacn")

_CTOR_VARIANTS = "12345"
_DTOR_VARIANTS = "012345"
_COMPLETE_VARIANT = "1"


class ManglingError(ValueError):
    """Raised when a mangled name cannot be scanned."""


def strip_global_prefix(name: str) -> str:
    """Remove the data-layout global prefix (the extra `_` on Mach-O)."""
    if name.startswith("_" + ITANIUM_PREFIX):
        return name[1:]
    return name


def is_mangled(name: str) -> bool:
    return name.startswith((ITANIUM_PREFIX, MICROSOFT_PREFIX))


class _ItaniumScanner:
    """Skips over an Itanium encoding, remembering where structor variants sit.

    Only structor tokens of the outermost entity (depth 0) are remembered;
    anything inside template arguments, types or enclosing local-name
    encodings is skipped at a deeper depth.
    """

    def __init__(self, text: str, pos: int = 0):
        self.text = text
        self.pos = pos
        self.depth = 0
        self.structors: list[tuple[str, int]] = []

    def error(self, what: str) -> ManglingError:
        return ManglingError(f"{what} at offset {self.pos} in {self.text!r}")

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def peek_in(self, chars: str | frozenset, offset: int = 0) -> bool:
        c = self.peek(offset)
        return bool(c) and c in chars

    def consume(self, prefix: str) -> bool:
        if self.text.startswith(prefix, self.pos):
            self.pos += len(prefix)
            return True
        return False

    def expect(self, prefix: str) -> None:
        if not self.consume(prefix):
            raise self.error(f"expected {prefix!r}")

    def digits(self) -> str:
        start = self.pos
        while self.peek().isdigit():
            self.pos += 1
        return self.text[start : self.pos]

    def number(self) -> None:
        self.consume("n")
        if not self.digits():
            raise self.error("expected number")

    def seq_id(self) -> None:
        while self.peek().isdigit() or self.peek().isupper():
            self.pos += 1
        self.expect("_")

    def source_name(self) -> None:
        length = self.digits()
        if not length:
            raise self.error("expected source name")
        end = self.pos + int(length)
        if end > len(self.text):
            raise self.error("truncated source name")
        self.pos = end

    def abi_tags(self) -> None:
        while self.consume("B"):
            self.source_name()

    def encoding(self) -> None:
        self.name()
        while self.peek() and self.peek() not in "E.":
            self.type()

    def name(self) -> None:
        c = self.peek()
        if c == "N":
            self.nested_name()
            return
        if c == "Z":
            self.local_name()
            return
        if c == "S" and self.peek(1) != "t":
            self.substitution()
        else:
            self.consume("St")
            self.unqualified_name()
        if self.peek() == "I":
            self.template_args()

    def nested_name(self) -> None:
        self.expect("N")
        while self.peek_in("rVK"):
            self.pos += 1
        if self.peek_in("RO"):
            self.pos += 1
        while not self.consume("E"):
            c = self.peek()
            if not c:
                raise self.error("unterminated nested name")
            if c == "I":
                self.template_args()
            elif c == "S":
                if not self.consume("St"):
                    self.substitution()
            elif c == "T":
                self.template_param()
            elif c == "D" and self.peek_in("tT", 1):
                raise self.error("decltype prefix not supported")
            elif c == "M":
                self.pos += 1
            else:
                self.unqualified_name()

    def local_name(self) -> None:
        self.expect("Z")
        self.depth += 1
        self.encoding()
        self.depth -= 1
        self.expect("E")
        if self.consume("s"):
            self.discriminator()
            return
        if self.consume("d"):
            self.digits()
            self.expect("_")
        self.name()
        self.discriminator()

    def discriminator(self) -> None:
        if self.consume("__"):
            self.number()
            self.expect("_")
        elif self.peek() == "_" and self.peek(1).isdigit():
            self.pos += 2

    def unqualified_name(self) -> None:
        self.consume("L")
        c = self.peek()
        if c.isdigit():
            self.source_name()
        elif c == "C":
            self.pos += 1
            inheriting = self.consume("I")
            self.structor("C", _CTOR_VARIANTS)
            if inheriting:
                self.type()
        elif c == "D" and self.peek_in(_DTOR_VARIANTS, 1):
            self.pos += 1
            self.structor("D", _DTOR_VARIANTS)
        elif c == "D" and self.peek(1) == "C":
            self.pos += 2
            while not self.consume("E"):
                self.source_name()
        elif c == "U":
            self.unnamed_type_name()
        elif c.islower():
            self.operator_name()
        else:
            raise self.error("unexpected unqualified name")
        self.abi_tags()

    def structor(self, kind: str, variants: str) -> None:
        if not self.peek_in(variants):
            raise self.error(f"bad {kind} variant")
        if self.depth == 0:
            self.structors.append((kind, self.pos))
        self.pos += 1

    def operator_name(self) -> None:
        if self.consume("cv"):
            self.type()
        elif self.consume("li"):
            self.source_name()
        elif self.peek() == "v" and self.peek(1).isdigit():
            self.pos += 2
            self.source_name()
        elif self.peek(1).isalpha():
            self.pos += 2
        else:
            raise self.error("bad operator name")

    def unnamed_type_name(self) -> None:
        self.expect("U")
        if self.consume("l"):
            self.depth += 1
            while not self.consume("E"):
                if not self.peek():
                    raise self.error("unterminated lambda signature")
                self.type()
            self.depth -= 1
        elif not (self.consume("t") or self.consume("b")):
            raise self.error("bad unnamed type name")
        self.digits()
        self.expect("_")

    def substitution(self) -> None:
        self.expect("S")
        if self.peek_in(_STD_SUBSTITUTIONS):
            self.pos += 1
            return
        self.seq_id()

    def template_param(self) -> None:
        self.expect("T")
        if self.peek() == "L":
            raise self.error("lambda template parameters not supported")
        self.digits()
        self.expect("_")

    def template_args(self) -> None:
        self.expect("I")
        self.depth += 1
        while not self.consume("E"):
            if not self.peek():
                raise self.error("unterminated template arguments")
            self.template_arg()
        self.depth -= 1

    def template_arg(self) -> None:
        c = self.peek()
        if c == "L":
            self.expr_primary()
        elif c == "J":
            self.pos += 1
            while not self.consume("E"):
                if not self.peek():
                    raise self.error("unterminated argument pack")
                self.template_arg()
        elif c in ("X", "Q"):
            raise self.error("expression template arguments not supported")
        else:
            self.type()

    def expr_primary(self) -> None:
        self.expect("L")
        if self.consume(ITANIUM_PREFIX):
            self.depth += 1
            self.encoding()
            self.depth -= 1
            self.expect("E")
            return
        self.type()
        end = self.text.find("E", self.pos)
        if end < 0:
            raise self.error("unterminated literal")
        self.pos = end + 1

    def type(self) -> None:
        self.depth += 1
        try:
            self._type()
        finally:
            self.depth -= 1

    def _type(self) -> None:
        c = self.peek()
        if not c:
            raise self.error("expected type")
        if c in _BUILTIN_TYPES:
            self.pos += 1
        elif c == "u":
            self.pos += 1
            self.source_name()
            if self.peek() == "I":
                self.template_args()
        elif c in "rVKPROCG":
            self.pos += 1
            self.type()
        elif c == "U":
            self.pos += 1
            self.source_name()
            if self.peek() == "I":
                self.template_args()
            self.type()
        elif c == "F":
            self.function_type()
        elif c == "A":
            self.array_type()
        elif c == "M":
            self.pos += 1
            self.type()
            self.type()
        elif c == "T":
            if self.peek_in("sue", 1):
                self.pos += 2
                self.name()
            else:
                self.template_param()
                if self.peek() == "I":
                    self.template_args()
        elif c == "D":
            self.d_type()
        elif c == "S":
            if self.peek(1) == "t":
                self.name()
            else:
                self.substitution()
                if self.peek() == "I":
                    self.template_args()
        elif c in "NZ" or c.isdigit():
            self.name()
        else:
            raise self.error("unexpected type")

    def d_type(self) -> None:
        code = self.text[self.pos : self.pos + 2]
        if code in ("Dp", "Dx", "Do"):
            self.pos += 2
            self.type()
        elif code == "Dv":
            self.pos += 2
            if not self.digits():
                raise self.error("vector size expressions not supported")
            self.expect("_")
            self.type()
        elif code == "DF":
            self.pos += 2
            self.digits()
            if not (self.consume("_") or self.consume("b") or self.consume("x")):
                raise self.error("bad floating point type")
        elif code in ("DB", "DU"):
            self.pos += 2
            if not self.digits():
                raise self.error("bit-int size expressions not supported")
            self.expect("_")
        elif code == "Dw":
            self.pos += 2
            while not self.consume("E"):
                self.type()
            self.type()
        elif code == "Dk":
            self.pos += 2
            self.name()
        elif self.peek_in(_D_BUILTIN_TYPES, 1):
            self.pos += 2
        else:
            raise self.error(f"unsupported type {code!r}")

    def function_type(self) -> None:
        self.expect("F")
        self.consume("Y")
        while not self.consume("E"):
            if not self.peek():
                raise self.error("unterminated function type")
            if self.peek_in("RO") and self.peek(1) == "E":
                self.pos += 1
                continue
            self.type()

    def array_type(self) -> None:
        self.expect("A")
        if not self.digits() and self.peek() != "_":
            raise self.error("array size expressions not supported")
        self.expect("_")
        self.type()


def complete_itanium_structor(mangled: str, destructor: bool) -> str:
    """Rewrite the structor token of an Itanium name to its complete-object variant."""
    if not mangled.startswith(ITANIUM_PREFIX):
        raise ManglingError(f"not an Itanium name: {mangled!r}")
    scanner = _ItaniumScanner(mangled, len(ITANIUM_PREFIX))
    scanner.encoding()
    wanted = "D" if destructor else "C"
    positions = [pos for kind, pos in scanner.structors if kind == wanted]
    if not positions:
        raise ManglingError(f"no {'destructor' if destructor else 'constructor'} in {mangled!r}")
    pos = positions[-1]
    return mangled[:pos] + _COMPLETE_VARIANT + mangled[pos + 1 :]


def complete_variant(manglings: list[str], destructor: bool) -> str | None:
    """Pick the complete-object name out of a structor's Itanium variants.

    Variants of one structor differ only in the digit of the structor token,
    so the complete one carries `1` wherever the variants disagree. Returns
    None when there is no second variant to compare against.
    """
    marker = "D" if destructor else "C"
    names = sorted({name for name in manglings if name.startswith(ITANIUM_PREFIX)})
    for name in names:
        others = [other for other in names if other != name and len(other) == len(name)]
        diffs = {
            i for other in others for i, (a, b) in enumerate(zip(name, other)) if a != b
        }
        if not diffs:
            continue
        # `CI1` marks an inheriting constructor.
        if all(
            name[i] == _COMPLETE_VARIANT
            and (name[i - 1] == marker or name[i - 2 : i] == marker + "I")
            for i in diffs
        ):
            return name
    return None


def complete_microsoft_structor(mangled: str, destructor: bool) -> str:
    """Microsoft names have a single constructor; destructors map `??1` to `??_D`."""
    if not destructor or not mangled.startswith("??1"):
        return mangled
    name = "??_D" + mangled[3:]
    # The vbase destructor returns void: `@XZ` becomes `XXZ`.
    if name.endswith("@XZ"):
        name = name[: -len("@XZ")] + "XXZ"
    return name


def complete_structor_name(mangled: str, destructor: bool) -> str:
    if mangled.startswith(MICROSOFT_PREFIX):
        return complete_microsoft_structor(mangled, destructor)
    return complete_itanium_structor(mangled, destructor)


def objc_method_name(
    instance: bool,
    class_name: str,
    selector: str,
    category: str | None = None,
) -> str:
    """`-[Class selector]`, or `+[Class(Category) selector]` for class methods in a category."""
    marker = "-" if instance else "+"
    owner = f"{class_name}({category})" if category else class_name
    return f"{marker}[{owner} {selector}]"


def objc_method_source_name(instance: bool, class_name: str, selector: str) -> str:
    """Length-prefixed method name used as the outer name of blocks inside a method."""
    name = objc_method_name(instance, class_name, selector)
    return f"{len(name)}{name}"


def block_invoke_name(outer: str, discriminator: int) -> str:
    """Name of the `discriminator`-th (0-based) block inside the function named `outer`."""
    if discriminator == 0:
        return f"__{outer}_block_invoke"
    return f"__{outer}_block_invoke_{discriminator + 1}"


def global_block_name(discriminator: int) -> str:
    return f"__block_global_{discriminator}"
