"""Type-directed Borsh value decoder.

Decodes bytes against a TypeRef into a plain Python tree
(None | bool | int | float | str | bytes | list | dict). Named references
are looked up in the type table on every visit. A decode either returns a
complete value or raises DecodeError carrying the path of names visited.
"""

import struct
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Union

from solders.pubkey import Pubkey

from anchorlens.codes import ErrorCode
from .cursor import ByteCursor
from .errors import DecodeError
from .idl import FieldDef, TypeDefinition
from .types import (
    INTEGER_WIDTHS,
    ArrayType,
    DefinedType,
    GenericType,
    OptionType,
    PrimitiveType,
    TupleType,
    TypeRef,
    VecType,
)


DEFAULT_MAX_DEPTH = 64

PUBKEY_SIZE = 32
LENGTH_PREFIX_SIZE = 4

# string and bytes fall back to their length prefix
_FIXED_PRIMITIVE_SIZES = {"bool": 1, "f32": 4, "f64": 8, "pubkey": PUBKEY_SIZE}


class TypeDecoder:
    """Decodes values for one program's type table."""

    def __init__(self, type_table: Mapping[str, TypeDefinition], max_depth: int = DEFAULT_MAX_DEPTH):
        self.type_table = type_table
        self.max_depth = max_depth
        self._min_sizes: Dict[TypeRef, int] = {}

    def decode(self, type_ref: TypeRef, cursor: ByteCursor, path: Optional[Sequence[str]] = None) -> Any:
        """Decode one value of ``type_ref``, advancing ``cursor`` by exactly its encoded size."""
        return self._decode(type_ref, cursor, list(path or []), 0)

    def decode_definition(self, type_def: TypeDefinition, cursor: ByteCursor,
                          path: Optional[Sequence[str]] = None) -> Any:
        """Decode a value of a named TypeDefinition."""
        return self._decode_definition(type_def, cursor, list(path or [type_def.name]), 0)

    def decode_fields(self, fields: Sequence[FieldDef], cursor: ByteCursor,
                      path: Optional[Sequence[str]] = None) -> Union[Dict[str, Any], List[Any]]:
        """Decode an ordered field list (struct body, variant payload or instruction args)."""
        return self._decode_fields(fields, cursor, list(path or []), 0)

    def min_encoded_size(self, type_ref: TypeRef) -> int:
        """Fewest bytes any value of ``type_ref`` can occupy on the wire.

        A non-empty vec whose element size is 0 is rejected on decode,
        as in Rust borsh.
        """
        size = self._min_sizes.get(type_ref)
        if size is None:
            size = self._min_size(type_ref, frozenset())
            self._min_sizes[type_ref] = size
        return size

    # -- internals ---------------------------------------------------------

    def _min_size(self, type_ref: TypeRef, visiting: FrozenSet[str]) -> int:
        if isinstance(type_ref, PrimitiveType):
            width = INTEGER_WIDTHS.get(type_ref.name)
            if width is not None:
                return width[0]
            return _FIXED_PRIMITIVE_SIZES.get(type_ref.name, LENGTH_PREFIX_SIZE)
        if isinstance(type_ref, (VecType, GenericType)):
            # generics raise UNSUPPORTED_TYPE on decode
            return LENGTH_PREFIX_SIZE
        if isinstance(type_ref, OptionType):
            return LENGTH_PREFIX_SIZE if type_ref.c_option else 1
        if isinstance(type_ref, ArrayType):
            return type_ref.length * self._min_size(type_ref.elem, visiting)
        if isinstance(type_ref, TupleType):
            return sum(self._min_size(t, visiting) for t in type_ref.elems)
        if isinstance(type_ref, DefinedType):
            type_def = self.type_table.get(type_ref.name)
            if type_def is None:
                # reported as UNRESOLVED_TYPE when decoded
                return 1
            if type_ref.name in visiting:
                return 0
            visiting = visiting | {type_ref.name}
            if type_def.kind == "enum":
                return 1
            if type_def.kind == "alias" and type_def.alias is not None:
                return self._min_size(type_def.alias, visiting)
            return sum(self._min_size(f.type, visiting) for f in type_def.fields)
        return 0

    def _decode(self, type_ref: TypeRef, cursor: ByteCursor, path: List[str], depth: int) -> Any:
        if depth > self.max_depth:
            raise DecodeError(
                f"Type nesting exceeds maximum depth {self.max_depth}",
                ErrorCode.DEPTH_EXCEEDED,
                path,
            )

        if isinstance(type_ref, PrimitiveType):
            return self._decode_primitive(type_ref.name, cursor, path)

        if isinstance(type_ref, DefinedType):
            type_def = self.type_table.get(type_ref.name)
            if type_def is None:
                raise DecodeError(f"Unresolved type reference '{type_ref.name}'", ErrorCode.UNRESOLVED_TYPE, path)
            return self._decode_definition(type_def, cursor, path, depth + 1)

        if isinstance(type_ref, VecType):
            length = cursor.read_uint(LENGTH_PREFIX_SIZE, path)
            if length and self.min_encoded_size(type_ref.elem) == 0:
                raise DecodeError(
                    f"Collection of {length} zero-sized elements is not decodable",
                    ErrorCode.UNSUPPORTED_TYPE,
                    path,
                )
            return [self._decode(type_ref.elem, cursor, path + [f"[{i}]"], depth + 1) for i in range(length)]

        if isinstance(type_ref, ArrayType):
            return [self._decode(type_ref.elem, cursor, path + [f"[{i}]"], depth + 1)
                    for i in range(type_ref.length)]

        if isinstance(type_ref, OptionType):
            tag_size = LENGTH_PREFIX_SIZE if type_ref.c_option else 1
            tag = cursor.read_uint(tag_size, path)
            if tag == 0:
                return None
            if tag != 1:
                raise DecodeError(f"Invalid option tag {tag}", ErrorCode.INVALID_OPTION_TAG, path)
            return self._decode(type_ref.elem, cursor, path, depth + 1)

        if isinstance(type_ref, TupleType):
            return [self._decode(t, cursor, path + [f"[{i}]"], depth + 1) for i, t in enumerate(type_ref.elems)]

        if isinstance(type_ref, GenericType):
            raise DecodeError(f"Generic type '{type_ref.name}' is not supported", ErrorCode.UNSUPPORTED_TYPE, path)

        raise DecodeError(f"Unsupported type shape {type_ref!r}", ErrorCode.UNSUPPORTED_TYPE, path)

    def _decode_definition(self, type_def: TypeDefinition, cursor: ByteCursor, path: List[str], depth: int) -> Any:
        if type_def.kind == "struct":
            return self._decode_fields(type_def.fields, cursor, path, depth)

        if type_def.kind == "enum":
            tag = cursor.read_uint(1, path)
            if tag >= len(type_def.variants):
                raise DecodeError(
                    f"Enum tag {tag} out of range for '{type_def.name}' ({len(type_def.variants)} variants)",
                    ErrorCode.INVALID_ENUM_TAG,
                    path,
                )
            variant = type_def.variants[tag]
            return {variant.name: self._decode_fields(variant.fields, cursor, path + [variant.name], depth)}

        if type_def.kind == "alias" and type_def.alias is not None:
            return self._decode(type_def.alias, cursor, path, depth + 1)

        raise DecodeError(f"Unsupported definition kind '{type_def.kind}'", ErrorCode.UNSUPPORTED_TYPE, path)

    def _decode_fields(self, fields: Sequence[FieldDef], cursor: ByteCursor, path: List[str],
                       depth: int) -> Union[Dict[str, Any], List[Any]]:
        # Tuple structs and tuple variants decode positionally
        if fields and all(f.name is None for f in fields):
            return [self._decode(f.type, cursor, path + [f"[{i}]"], depth + 1) for i, f in enumerate(fields)]
        out: Dict[str, Any] = {}
        for i, f in enumerate(fields):
            name = f.name if f.name is not None else str(i)
            out[name] = self._decode(f.type, cursor, path + [name], depth + 1)
        return out

    def _decode_primitive(self, name: str, cursor: ByteCursor, path: List[str]) -> Any:
        width = INTEGER_WIDTHS.get(name)
        if width is not None:
            size, signed = width
            return cursor.read_int(size, path) if signed else cursor.read_uint(size, path)
        if name == "bool":
            return cursor.read(1, path) != b"\x00"
        if name == "f32":
            return struct.unpack("<f", cursor.read(4, path))[0]
        if name == "f64":
            return struct.unpack("<d", cursor.read(8, path))[0]
        if name == "pubkey":
            return str(Pubkey.from_bytes(cursor.read(PUBKEY_SIZE, path)))
        if name == "string":
            length = cursor.read_uint(LENGTH_PREFIX_SIZE, path)
            raw = cursor.read(length, path)
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise DecodeError(f"Invalid UTF-8 in string: {e}", ErrorCode.INVALID_UTF8, path) from e
        if name == "bytes":
            length = cursor.read_uint(LENGTH_PREFIX_SIZE, path)
            return cursor.read(length, path)
        raise DecodeError(f"Unsupported primitive '{name}'", ErrorCode.UNSUPPORTED_TYPE, path)


def decode_value(type_ref: TypeRef, data: Union[bytes, ByteCursor],
                 type_table: Optional[Mapping[str, TypeDefinition]] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Decode a single value from bytes or an existing cursor."""
    cursor = data if isinstance(data, ByteCursor) else ByteCursor(data)
    return TypeDecoder(type_table or {}, max_depth=max_depth).decode(type_ref, cursor)
