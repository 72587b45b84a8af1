"""Schema model: Anchor IDL parsing and discriminator indices.

Two IDL layouts are accepted:

- legacy (pre-0.30): top-level ``name``, ``isMut``/``isSigner``/``isOptional``
  account flags, account bodies inline under ``accounts[].type``,
  ``{"defined": "Name"}`` references and ``publicKey``;
- 0.30+: ``metadata.name``, ``address``, ``writable``/``signer``/``optional``
  flags, explicit ``discriminator`` arrays, account bodies in ``types``,
  ``{"defined": {"name": "Name"}}`` references and ``pubkey``.

Raw JSON is validated with pydantic models, then normalized into frozen
definitions addressed by name. The resulting SchemaIndex is immutable.
"""

import copy
import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from anchorlens.codes import ErrorCode
from .discriminators import account_discriminator, coerce_discriminator, instruction_discriminator
from .errors import SchemaError
from .types import TypeRef, iter_defined_names, parse_type_ref


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Raw IDL JSON (pydantic)
# ---------------------------------------------------------------------------


class RawEnumVariant(BaseModel):
    name: str
    fields: Optional[List[Any]] = None

    model_config = ConfigDict(extra="ignore")


class RawTypeBody(BaseModel):
    """Body of a type definition: struct, enum or alias."""
    kind: Literal["struct", "enum", "type"]
    fields: Optional[List[Any]] = None  # named {name, type} objects or bare type expressions
    variants: Optional[List[RawEnumVariant]] = None
    alias: Any = None

    model_config = ConfigDict(extra="ignore")


class RawTypeDef(BaseModel):
    name: str
    type: RawTypeBody
    generics: Optional[List[Any]] = None

    model_config = ConfigDict(extra="ignore")


class RawAccountDef(BaseModel):
    """Declared account type; legacy IDLs inline the body, 0.30+ name a type."""
    name: str
    discriminator: Optional[List[int]] = None
    type: Optional[RawTypeBody] = None

    model_config = ConfigDict(extra="ignore")


class RawInstructionAccount(BaseModel):
    """Leaf account role or nested group of roles."""
    name: str
    accounts: Optional[List["RawInstructionAccount"]] = None
    # 0.30+ flags
    writable: Optional[bool] = None
    signer: Optional[bool] = None
    optional: Optional[bool] = None
    # legacy flags
    is_mut: Optional[bool] = Field(None, alias="isMut")
    is_signer: Optional[bool] = Field(None, alias="isSigner")
    is_optional: Optional[bool] = Field(None, alias="isOptional")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RawField(BaseModel):
    name: str
    type: Any

    model_config = ConfigDict(extra="ignore")


class RawInstruction(BaseModel):
    name: str
    discriminator: Optional[List[int]] = None
    accounts: List[RawInstructionAccount] = Field(default_factory=list)
    args: List[RawField] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class RawErrorCode(BaseModel):
    code: int
    name: str
    msg: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RawMetadata(BaseModel):
    name: str
    version: Optional[str] = None
    spec: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class RawIdl(BaseModel):
    """Top-level Anchor IDL document."""
    address: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    metadata: Optional[RawMetadata] = None
    instructions: List[RawInstruction] = Field(default_factory=list)
    accounts: List[RawAccountDef] = Field(default_factory=list)
    types: List[RawTypeDef] = Field(default_factory=list)
    errors: List[RawErrorCode] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @property
    def program_name(self) -> Optional[str]:
        if self.metadata is not None:
            return self.metadata.name
        return self.name

    @property
    def program_version(self) -> Optional[str]:
        if self.metadata is not None and self.metadata.version:
            return self.metadata.version
        return self.version


RawInstructionAccount.model_rebuild()


# ---------------------------------------------------------------------------
# Normalized definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldDef:
    """A struct/variant/argument field. ``name`` is None for tuple fields."""
    name: Optional[str]
    type: TypeRef


@dataclass(frozen=True)
class VariantDef:
    name: str
    fields: Tuple[FieldDef, ...] = ()

    @property
    def is_tuple(self) -> bool:
        return bool(self.fields) and all(f.name is None for f in self.fields)


@dataclass(frozen=True)
class TypeDefinition:
    """Named shape: struct (ordered fields), enum (ordered variants) or alias."""
    name: str
    kind: Literal["struct", "enum", "alias"]
    fields: Tuple[FieldDef, ...] = ()
    variants: Tuple[VariantDef, ...] = ()
    alias: Optional[TypeRef] = None

    @property
    def is_tuple(self) -> bool:
        return bool(self.fields) and all(f.name is None for f in self.fields)


@dataclass(frozen=True)
class AccountRole:
    """Declared instruction account with its expected capabilities."""
    name: str
    signer: bool = False
    writable: bool = False
    optional: bool = False


@dataclass(frozen=True)
class AccountRoleGroup:
    """Composite accounts struct nested inside an instruction's account list."""
    name: str
    roles: Tuple[Union[AccountRole, "AccountRoleGroup"], ...]


@dataclass(frozen=True)
class OperationDefinition:
    """Callable instruction: discriminator, ordered arguments and account roles."""
    name: str
    discriminator: bytes
    args: Tuple[FieldDef, ...]
    accounts: Tuple[Union[AccountRole, AccountRoleGroup], ...]


class SchemaIndex:
    """Immutable, indexed view of one program's IDL.

    Holds the type table (for name resolution during decode) and two
    discriminator indices: account key -> TypeDefinition and
    instruction key -> OperationDefinition.
    """

    def __init__(
        self,
        name: str,
        types: Sequence[TypeDefinition],
        operations: Sequence[OperationDefinition],
        type_table: Dict[str, TypeDefinition],
        account_index: Dict[bytes, TypeDefinition],
        operation_index: Dict[bytes, OperationDefinition],
        address: Optional[str] = None,
        version: Optional[str] = None,
        errors: Optional[Dict[int, Tuple[str, Optional[str]]]] = None,
        raw: Optional[Dict[str, Any]] = None,
    ):
        self._name = name
        self._address = address
        self._version = version
        self._types = tuple(types)
        self._operations = tuple(operations)
        self._type_table = MappingProxyType(dict(type_table))
        self._account_index = MappingProxyType(dict(account_index))
        self._operation_index = MappingProxyType(dict(operation_index))
        self._errors = MappingProxyType(dict(errors or {}))
        self._raw = copy.deepcopy(raw or {})

    @property
    def name(self) -> str:
        return self._name

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def version(self) -> Optional[str]:
        return self._version

    @property
    def types(self) -> Tuple[TypeDefinition, ...]:
        return self._types

    @property
    def operations(self) -> Tuple[OperationDefinition, ...]:
        return self._operations

    @property
    def type_table(self) -> Mapping[str, TypeDefinition]:
        return self._type_table

    @property
    def account_index(self) -> Mapping[bytes, TypeDefinition]:
        return self._account_index

    @property
    def operation_index(self) -> Mapping[bytes, OperationDefinition]:
        return self._operation_index

    def resolve(self, name: str) -> Optional[TypeDefinition]:
        """Look up a type definition by name."""
        return self._type_table.get(name)

    def operation_by_name(self, name: str) -> Optional[OperationDefinition]:
        for op in self._operations:
            if op.name == name:
                return op
        return None

    def error_by_code(self, code: int) -> Optional[Tuple[str, Optional[str]]]:
        """Return (name, message) of a program-declared error code."""
        return self._errors.get(code)

    def to_idl_json(self) -> Dict[str, Any]:
        """Copy of the IDL document this index was built from."""
        return copy.deepcopy(self._raw)

    def __repr__(self) -> str:
        return (
            f"SchemaIndex(name={self._name!r}, types={len(self._types)}, "
            f"accounts={len(self._account_index)}, instructions={len(self._operation_index)})"
        )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _is_named_field(raw: Any) -> bool:
    return isinstance(raw, dict) and "name" in raw and "type" in raw


def _build_fields(raw_fields: Optional[List[Any]], path: List[str]) -> Tuple[FieldDef, ...]:
    """Normalize a field list that is either all named or all tuple-positional."""
    fields: List[FieldDef] = []
    for i, raw in enumerate(raw_fields or []):
        if _is_named_field(raw):
            fields.append(FieldDef(raw["name"], parse_type_ref(raw["type"], path + [raw["name"]])))
        else:
            fields.append(FieldDef(None, parse_type_ref(raw, path + [f"[{i}]"])))
    return tuple(fields)


def _build_type_definition(name: str, body: RawTypeBody) -> TypeDefinition:
    path = [name]
    if body.kind == "struct":
        return TypeDefinition(name=name, kind="struct", fields=_build_fields(body.fields, path))
    if body.kind == "enum":
        variants = tuple(
            VariantDef(v.name, _build_fields(v.fields, path + [v.name]))
            for v in (body.variants or [])
        )
        return TypeDefinition(name=name, kind="enum", variants=variants)
    # kind == "type"
    if body.alias is None:
        raise SchemaError("Alias type is missing 'alias'", ErrorCode.INVALID_SCHEMA_STRUCTURE, path)
    return TypeDefinition(name=name, kind="alias", alias=parse_type_ref(body.alias, path))


def _build_account_roles(
    raw_accounts: List[RawInstructionAccount],
) -> Tuple[Union[AccountRole, AccountRoleGroup], ...]:
    roles: List[Union[AccountRole, AccountRoleGroup]] = []
    for raw in raw_accounts:
        if raw.accounts is not None:
            roles.append(AccountRoleGroup(raw.name, _build_account_roles(raw.accounts)))
            continue
        roles.append(AccountRole(
            name=raw.name,
            signer=bool(raw.signer if raw.signer is not None else raw.is_signer),
            writable=bool(raw.writable if raw.writable is not None else raw.is_mut),
            optional=bool(raw.optional if raw.optional is not None else raw.is_optional),
        ))
    return tuple(roles)


def _check_references(type_table: Mapping[str, TypeDefinition],
                      operations: Sequence[OperationDefinition]) -> None:
    """Every named reference must resolve in the type table."""

    def check(type_ref: TypeRef, path: List[str]) -> None:
        for name in iter_defined_names(type_ref):
            if name not in type_table:
                raise SchemaError(f"Unresolved type reference '{name}'", ErrorCode.UNRESOLVED_TYPE, path)

    for type_def in type_table.values():
        for f in type_def.fields:
            check(f.type, [type_def.name, f.name or "?"])
        for v in type_def.variants:
            for f in v.fields:
                check(f.type, [type_def.name, v.name, f.name or "?"])
        if type_def.alias is not None:
            check(type_def.alias, [type_def.name])
    for op in operations:
        for arg in op.args:
            check(arg.type, [op.name, arg.name or "?"])


def build_schema_index_from_dict(data: Dict[str, Any]) -> SchemaIndex:
    """Build a SchemaIndex from an already-parsed IDL document.

    Raises:
        SchemaError: on structurally invalid IDL, bad discriminators or
            unresolved type names.
    """
    if not isinstance(data, dict):
        raise SchemaError("IDL document must be a JSON object", ErrorCode.INVALID_SCHEMA_STRUCTURE)
    try:
        idl = RawIdl.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        loc = [str(part) if not isinstance(part, int) else f"[{part}]" for part in first.get("loc", ())]
        raise SchemaError(
            f"Invalid IDL structure: {first.get('msg', str(e))}",
            ErrorCode.INVALID_SCHEMA_STRUCTURE,
            loc,
        ) from e

    program_name = idl.program_name
    if not program_name:
        raise SchemaError("IDL has no program name", ErrorCode.INVALID_SCHEMA_STRUCTURE)

    types: List[TypeDefinition] = []
    type_table: Dict[str, TypeDefinition] = {}
    for raw_type in idl.types:
        type_def = _build_type_definition(raw_type.name, raw_type.type)
        types.append(type_def)
        type_table[type_def.name] = type_def

    # Legacy account bodies live inline; register them so other types can name them
    for raw_account in idl.accounts:
        if raw_account.type is not None and raw_account.name not in type_table:
            type_def = _build_type_definition(raw_account.name, raw_account.type)
            types.append(type_def)
            type_table[type_def.name] = type_def

    account_index: Dict[bytes, TypeDefinition] = {}
    for raw_account in idl.accounts:
        type_def = type_table.get(raw_account.name)
        if type_def is None:
            raise SchemaError(
                f"Account '{raw_account.name}' has no type definition",
                ErrorCode.UNRESOLVED_TYPE,
                ["accounts", raw_account.name],
            )
        key = coerce_discriminator(
            raw_account.discriminator,
            account_discriminator(raw_account.name),
            ["accounts", raw_account.name],
        )
        if key in account_index:
            logger.warning(
                "Duplicate account discriminator %s: %s overwrites %s",
                key.hex(), raw_account.name, account_index[key].name,
            )
        account_index[key] = type_def

    operations: List[OperationDefinition] = []
    operation_index: Dict[bytes, OperationDefinition] = {}
    for raw_ix in idl.instructions:
        path = ["instructions", raw_ix.name]
        key = coerce_discriminator(raw_ix.discriminator, instruction_discriminator(raw_ix.name), path)
        op = OperationDefinition(
            name=raw_ix.name,
            discriminator=key,
            args=tuple(FieldDef(a.name, parse_type_ref(a.type, path + [a.name])) for a in raw_ix.args),
            accounts=_build_account_roles(raw_ix.accounts),
        )
        operations.append(op)
        if key in operation_index:
            logger.warning(
                "Duplicate instruction discriminator %s: %s overwrites %s",
                key.hex(), op.name, operation_index[key].name,
            )
        operation_index[key] = op

    _check_references(type_table, operations)

    return SchemaIndex(
        name=program_name,
        types=types,
        operations=operations,
        type_table=type_table,
        account_index=account_index,
        operation_index=operation_index,
        address=idl.address,
        version=idl.program_version,
        errors={e.code: (e.name, e.msg) for e in idl.errors},
        raw=data,
    )


def build_schema_index(raw_schema_bytes: bytes) -> SchemaIndex:
    """Build a SchemaIndex from decompressed IDL JSON bytes.

    Raises:
        SchemaError: if the bytes are not UTF-8 JSON or describe an invalid IDL.
    """
    try:
        data = json.loads(raw_schema_bytes)
    except ValueError as e:
        raise SchemaError(f"Schema bytes are not valid JSON: {e}", ErrorCode.INVALID_SCHEMA_BYTES) from e
    return build_schema_index_from_dict(data)
