"""ABI type grammar: type-list splitting, type parsing and signature parsing.

This module provides:
- `split_tuple_types()`: split a comma-separated type list at top-level commas
- `parse_type()` → `AbiTypeSpec` (base type, tuple components, array dims)
- `parse_signature()` → `ParsedSignature` (name + ordered parameter types)

Accepted tuple spellings are `tuple(a,b)` and `(a,b)`. Parameter names and
data-location keywords (`address to`, `bytes calldata data`) are dropped.
Malformed input raises `TypeGrammarError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from calldisasm.core.errors import TypeGrammarError

_ALIASES = {"uint": "uint256", "int": "int256", "byte": "bytes1", "function": "bytes24"}
_NAME_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_UINT_RE = re.compile(r"^(u?)int([0-9]{1,3})$")
_BYTES_RE = re.compile(r"^bytes([0-9]{1,2})$")
_DIM_RE = re.compile(r"[0-9]{1,9}")
_MAX_NESTING = 32  # tuple nesting and array dimensions per type
_IGNORED_WORDS = {"indexed", "memory", "calldata", "storage", "payable"}


# ---- Type-list splitting ----
def split_tuple_types(type_list: str) -> list[str]:
    """Split a type list by commas while respecting nested tuple types.

    >>> split_tuple_types("address,tuple(uint256,bool),bytes")
    ['address', 'tuple(uint256,bool)', 'bytes']
    """
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in type_list:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise TypeGrammarError(f"Unbalanced ')' in type list: {type_list!r}")
        elif ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)
    if depth != 0:
        raise TypeGrammarError(f"Unbalanced '(' in type list: {type_list!r}")
    if buf:
        items.append("".join(buf).strip())
    return [i for i in items if i]


# ---- Parsed type ----


@dataclass(frozen=True, slots=True)
class AbiTypeSpec:
    """Structured ABI type.

    `dims` lists array dimensions innermost first; `None` marks a dynamic
    dimension. `uint256[2][]` has dims `(2, None)`.
    """

    base: str  # "uint256", "address", "bytes", "tuple", ...
    components: tuple[AbiTypeSpec, ...] = ()
    dims: tuple[int | None, ...] = ()

    @property
    def is_array(self) -> bool:
        return bool(self.dims)

    @property
    def is_tuple(self) -> bool:
        return not self.dims and self.base == "tuple"

    @property
    def is_dynamic(self) -> bool:
        if self.dims:
            return self.dims[-1] is None or self.element().is_dynamic
        if self.base == "tuple":
            return any(c.is_dynamic for c in self.components)
        return self.base in ("bytes", "string")

    @property
    def head_words(self) -> int:
        """Number of 32-byte words this type occupies in a head region."""
        if self.is_dynamic:
            return 1
        if self.dims:
            return int(self.dims[-1] or 0) * self.element().head_words
        if self.base == "tuple":
            return sum(c.head_words for c in self.components)
        return 1

    def element(self) -> AbiTypeSpec:
        """Element type of an array type."""
        if not self.dims:
            raise TypeGrammarError(f"{self.canonical} is not an array type")
        return AbiTypeSpec(self.base, self.components, self.dims[:-1])

    def _render(self, tuple_keyword: bool) -> str:
        if self.base == "tuple":
            inner = ",".join(c._render(tuple_keyword) for c in self.components)
            head = f"tuple({inner})" if tuple_keyword else f"({inner})"
        else:
            head = self.base
        return head + "".join(f"[{'' if d is None else d}]" for d in self.dims)

    @property
    def canonical(self) -> str:
        """Display form, tuples spelled `tuple(...)`."""
        return self._render(tuple_keyword=True)

    @property
    def selector_form(self) -> str:
        """Form hashed into function selectors, tuples spelled `(...)`."""
        return self._render(tuple_keyword=False)


def _strip_param_name(text: str) -> tuple[str, str]:
    """Split `"address to"` into `("address", "to")`; names outside parens only."""
    s = " ".join(text.split())
    close = s.rfind(")")
    tail = s[close + 1 :] if close != -1 else s
    words = tail.split(" ")
    if close != -1:
        # first word glued to ')' holds array suffixes, e.g. ")[] calls"
        type_part = s[: close + 1] + words[0]
        rest = words[1:]
    else:
        type_part = words[0]
        rest = words[1:]
    rest = [w for w in rest if w and w not in _IGNORED_WORDS]
    if len(rest) > 1:
        raise TypeGrammarError(f"Cannot parse parameter: {text!r}")
    return type_part, (rest[0] if rest else "")


def _parse_elementary(base: str) -> str:
    base = _ALIASES.get(base, base)
    if base in ("address", "bool", "string", "bytes"):
        return base
    m = _UINT_RE.match(base)
    if m:
        bits = int(m.group(2))
        if bits % 8 or not 8 <= bits <= 256:
            raise TypeGrammarError(f"Invalid integer width: {base!r}")
        return base
    m = _BYTES_RE.match(base)
    if m:
        size = int(m.group(1))
        if not 1 <= size <= 32:
            raise TypeGrammarError(f"Invalid fixed bytes size: {base!r}")
        return base
    raise TypeGrammarError(f"Unsupported ABI type: {base!r}")


def parse_type(text: str) -> AbiTypeSpec:
    """Parse one ABI type string into an `AbiTypeSpec`."""
    return _parse_type(text, 0)


def _parse_type(text: str, nesting: int) -> AbiTypeSpec:
    if nesting > _MAX_NESTING:
        raise TypeGrammarError(f"Tuple nesting deeper than {_MAX_NESTING} levels")
    s = text.strip()
    if " " in s:
        s, _ = _strip_param_name(s)
    if not s:
        raise TypeGrammarError("Empty ABI type")

    dims: list[int | None] = []
    while s.endswith("]"):
        idx = s.rfind("[")
        if idx == -1:
            raise TypeGrammarError(f"Unbalanced ']' in type: {text!r}")
        inner = s[idx + 1 : -1].strip()
        if inner and not _DIM_RE.fullmatch(inner):
            raise TypeGrammarError(f"Invalid array dimension {inner!r} in type: {text!r}")
        dims.insert(0, int(inner) if inner else None)
        if len(dims) > _MAX_NESTING:
            raise TypeGrammarError(f"More than {_MAX_NESTING} array dimensions in type: {text!r}")
        s = s[:idx].strip()

    if s.startswith("tuple("):
        s = s[len("tuple"):]
    if s.startswith("("):
        if not s.endswith(")"):
            raise TypeGrammarError(f"Unbalanced tuple in type: {text!r}")
        components = tuple(_parse_type(t, nesting + 1) for t in split_tuple_types(s[1:-1]))
        return AbiTypeSpec("tuple", components, tuple(dims))
    if "(" in s or ")" in s or "[" in s:
        raise TypeGrammarError(f"Malformed ABI type: {text!r}")
    return AbiTypeSpec(_parse_elementary(s), (), tuple(dims))


def canonical_type(text: str) -> str:
    """Return the canonical spelling of an ABI type (`uint` → `uint256`, ...)."""
    return parse_type(text).canonical


def selector_type(text: str) -> str:
    """Return the spelling used for selector hashing (tuple keyword stripped)."""
    return parse_type(text).selector_form


# ---- Signatures ----


@dataclass(frozen=True, slots=True)
class ParsedSignature:
    """Function name plus ordered parameter types (and optional names)."""

    name: str
    types: tuple[AbiTypeSpec, ...]
    names: tuple[str, ...] = ()

    @property
    def selector_signature(self) -> str:
        """Canonical text hashed into the 4-byte selector."""
        return f"{self.name}({','.join(t.selector_form for t in self.types)})"

    @property
    def display(self) -> str:
        return f"{self.name}({','.join(t.canonical for t in self.types)})"

    def param_name(self, i: int) -> str:
        if i < len(self.names) and self.names[i]:
            return self.names[i]
        return f"param{i}"


def parse_signature(signature: str) -> ParsedSignature:
    """Parse `name(type1,type2,...)` into a `ParsedSignature`.

    Example input:
      "aggregate((address target, bytes callData)[] calls)"
    """
    sig = signature.strip()
    if sig.startswith("function "):
        sig = sig[len("function "):].strip()
    open_paren = sig.find("(")
    if open_paren == -1 or not sig.endswith(")"):
        raise TypeGrammarError(f"Invalid function signature: {signature!r}")
    name = sig[:open_paren].strip()
    if not _NAME_RE.match(name):
        raise TypeGrammarError(f"Invalid function name in signature: {signature!r}")

    types: list[AbiTypeSpec] = []
    names: list[str] = []
    for part in split_tuple_types(sig[open_paren + 1 : -1]):
        type_part, param_name = _strip_param_name(part) if " " in part.strip() else (part, "")
        types.append(parse_type(type_part))
        names.append(param_name)
    return ParsedSignature(name=name, types=tuple(types), names=tuple(names))
