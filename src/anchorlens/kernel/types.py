"""Type references parsed from IDL type expressions.

A TypeRef never embeds another TypeDefinition. Named references are kept
as ``DefinedType(name)`` and resolved against the schema's type table at
decode time, so self-referential type graphs need no special handling.
"""

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

from anchorlens.codes import ErrorCode
from .errors import SchemaError


# name -> (byte width, signed); floats and variable-length primitives are handled separately
INTEGER_WIDTHS = {
    "u8": (1, False),
    "i8": (1, True),
    "u16": (2, False),
    "i16": (2, True),
    "u32": (4, False),
    "i32": (4, True),
    "u64": (8, False),
    "i64": (8, True),
    "u128": (16, False),
    "i128": (16, True),
    "u256": (32, False),
    "i256": (32, True),
}

PRIMITIVE_NAMES = frozenset(INTEGER_WIDTHS) | {"bool", "f32", "f64", "string", "bytes", "pubkey"}

# Legacy (pre-0.30) IDL spellings
PRIMITIVE_ALIASES = {"publicKey": "pubkey"}


@dataclass(frozen=True)
class PrimitiveType:
    """Fixed or length-prefixed scalar (integers, floats, bool, string, bytes, pubkey)."""
    name: str


@dataclass(frozen=True)
class ArrayType:
    """Fixed-length array; no length prefix on the wire."""
    elem: "TypeRef"
    length: int


@dataclass(frozen=True)
class VecType:
    """Dynamic vector with a u32 length prefix."""
    elem: "TypeRef"


@dataclass(frozen=True)
class OptionType:
    """Optional value. Borsh options use a u8 tag, C-style options a u32 tag."""
    elem: "TypeRef"
    c_option: bool = False


@dataclass(frozen=True)
class TupleType:
    elems: Tuple["TypeRef", ...]


@dataclass(frozen=True)
class DefinedType:
    """Reference to a named TypeDefinition."""
    name: str


@dataclass(frozen=True)
class GenericType:
    """Generic parameter or generic instantiation; recognized but not decodable."""
    name: str


TypeRef = Union[PrimitiveType, ArrayType, VecType, OptionType, TupleType, DefinedType, GenericType]


def parse_type_ref(raw: Any, path: Optional[Sequence[str]] = None) -> TypeRef:
    """Parse an IDL type expression (legacy or 0.30+ layout) into a TypeRef.

    Raises:
        SchemaError: if the expression is not a recognized type shape.
    """
    path = list(path or [])

    if isinstance(raw, str):
        name = PRIMITIVE_ALIASES.get(raw, raw)
        if name in PRIMITIVE_NAMES:
            return PrimitiveType(name)
        raise SchemaError(f"Unknown primitive type '{raw}'", ErrorCode.UNKNOWN_TYPE_EXPRESSION, path)

    if not isinstance(raw, dict) or len(raw) != 1:
        raise SchemaError(
            f"Type expression must be a string or single-key object, got {raw!r}",
            ErrorCode.UNKNOWN_TYPE_EXPRESSION,
            path,
        )

    (kind, body), = raw.items()

    if kind == "vec":
        return VecType(parse_type_ref(body, path + ["vec"]))
    if kind == "option":
        return OptionType(parse_type_ref(body, path + ["option"]))
    if kind == "coption":
        return OptionType(parse_type_ref(body, path + ["coption"]), c_option=True)
    if kind == "array":
        if not isinstance(body, list) or len(body) != 2:
            raise SchemaError("Array type must be [type, length]", ErrorCode.UNKNOWN_TYPE_EXPRESSION, path)
        elem = parse_type_ref(body[0], path + ["array"])
        length = body[1]
        if isinstance(length, dict) and "generic" in length:
            return GenericType(f"array length {length['generic']}")
        if not isinstance(length, int) or isinstance(length, bool) or length < 0:
            raise SchemaError(f"Invalid array length {length!r}", ErrorCode.UNKNOWN_TYPE_EXPRESSION, path)
        return ArrayType(elem, length)
    if kind == "tuple":
        if not isinstance(body, list):
            raise SchemaError("Tuple type must be a list", ErrorCode.UNKNOWN_TYPE_EXPRESSION, path)
        return TupleType(tuple(parse_type_ref(t, path + [f"[{i}]"]) for i, t in enumerate(body)))
    if kind == "defined":
        # Legacy: {"defined": "Name"}; 0.30+: {"defined": {"name": "Name", "generics": [...]}}
        if isinstance(body, str):
            return DefinedType(body)
        if isinstance(body, dict) and isinstance(body.get("name"), str):
            if body.get("generics"):
                return GenericType(body["name"])
            return DefinedType(body["name"])
        raise SchemaError(f"Invalid defined type {body!r}", ErrorCode.UNKNOWN_TYPE_EXPRESSION, path)
    if kind == "generic":
        return GenericType(str(body))

    raise SchemaError(f"Unknown type expression '{kind}'", ErrorCode.UNKNOWN_TYPE_EXPRESSION, path)


def iter_defined_names(type_ref: TypeRef) -> Iterator[str]:
    """Yield every named reference reachable without crossing a DefinedType."""
    stack: List[TypeRef] = [type_ref]
    while stack:
        current = stack.pop()
        if isinstance(current, DefinedType):
            yield current.name
        elif isinstance(current, (ArrayType, VecType, OptionType)):
            stack.append(current.elem)
        elif isinstance(current, TupleType):
            stack.extend(current.elems)
