"""Tests for IDL parsing and discriminator indices."""

import hashlib
import json

import pytest

from anchorlens.codes import ErrorCode
from anchorlens.kernel.discriminators import (
    account_discriminator,
    instruction_discriminator,
    pad_discriminator,
    to_snake_case,
)
from anchorlens.kernel.errors import SchemaError
from anchorlens.kernel.idl import AccountRole, AccountRoleGroup, build_schema_index, build_schema_index_from_dict
from anchorlens.kernel.types import (
    ArrayType,
    DefinedType,
    GenericType,
    OptionType,
    PrimitiveType,
    TupleType,
    VecType,
    parse_type_ref,
)

from conftest import CLOSE_DISC, DEPOSIT_DISC, MARKER_DISC, VAULT_DISC, VAULT_PROGRAM


def _bytes(idl: dict) -> bytes:
    return json.dumps(idl).encode("utf-8")


def test_parse_type_ref_shapes():
    """Test every type expression shape, legacy and 0.30+ spellings."""
    assert parse_type_ref("u64") == PrimitiveType("u64")
    assert parse_type_ref("publicKey") == PrimitiveType("pubkey")
    assert parse_type_ref({"vec": "u8"}) == VecType(PrimitiveType("u8"))
    assert parse_type_ref({"option": "bool"}) == OptionType(PrimitiveType("bool"))
    assert parse_type_ref({"coption": "u32"}) == OptionType(PrimitiveType("u32"), c_option=True)
    assert parse_type_ref({"array": ["u8", 32]}) == ArrayType(PrimitiveType("u8"), 32)
    assert parse_type_ref({"tuple": ["u8", "string"]}) == TupleType((PrimitiveType("u8"), PrimitiveType("string")))
    assert parse_type_ref({"defined": "Pool"}) == DefinedType("Pool")
    assert parse_type_ref({"defined": {"name": "Pool"}}) == DefinedType("Pool")
    assert parse_type_ref({"defined": {"name": "Wrapper", "generics": [{"kind": "type", "type": "u8"}]}}) == \
        GenericType("Wrapper")
    assert parse_type_ref({"generic": "T"}) == GenericType("T")


def test_parse_type_ref_rejects_unknown():
    with pytest.raises(SchemaError) as excinfo:
        parse_type_ref("u7", ["Pool", "fee"])
    assert excinfo.value.code == ErrorCode.UNKNOWN_TYPE_EXPRESSION
    assert excinfo.value.path == ["Pool", "fee"]
    assert "Pool.fee" in str(excinfo.value)

    with pytest.raises(SchemaError):
        parse_type_ref({"hashmap": ["u8", "u8"]})
    with pytest.raises(SchemaError):
        parse_type_ref({"array": ["u8", -1]})


def test_snake_case_matches_anchor_naming():
    assert to_snake_case("incrementBy") == "increment_by"
    assert to_snake_case("initializeV2") == "initialize_v2"
    assert to_snake_case("setHTTPRoute") == "set_http_route"
    assert to_snake_case("already_snake") == "already_snake"


def test_derived_discriminators_follow_anchor_rule():
    assert account_discriminator("Counter") == hashlib.sha256(b"account:Counter").digest()[:8]
    assert instruction_discriminator("incrementBy") == hashlib.sha256(b"global:increment_by").digest()[:8]


def test_pad_discriminator():
    assert pad_discriminator(b"\x01\x02") == b"\x01\x02" + b"\x00" * 6
    assert pad_discriminator(b"") == b"\x00" * 8
    assert pad_discriminator(bytes(range(12))) == bytes(range(8))


def test_build_new_format_index(vault_schema):
    """Test 0.30+ IDL: explicit discriminators, account bodies from types."""
    assert vault_schema.name == "vault"
    assert vault_schema.address == VAULT_PROGRAM
    assert vault_schema.version == "0.1.0"

    assert vault_schema.account_index[VAULT_DISC].name == "Vault"
    assert vault_schema.account_index[MARKER_DISC].name == "Marker"
    assert vault_schema.operation_index[DEPOSIT_DISC].name == "deposit"
    assert vault_schema.operation_index[CLOSE_DISC].name == "close"

    vault = vault_schema.resolve("Vault")
    assert [f.name for f in vault.fields] == ["owner", "balance", "state", "history"]
    state = vault_schema.resolve("VaultState")
    assert [v.name for v in state.variants] == ["Open", "Locked", "Migrated"]
    assert state.variants[2].is_tuple

    deposit = vault_schema.operation_by_name("deposit")
    assert [a.name for a in deposit.args] == ["amount", "memo"]
    assert deposit.accounts[0] == AccountRole("owner", signer=True, writable=True)
    assert deposit.accounts[2] == AccountRole("referrer", optional=True)
    assert isinstance(deposit.accounts[3], AccountRoleGroup)
    assert [r.name for r in deposit.accounts[3].roles] == ["token_program", "system_program"]

    assert vault_schema.error_by_code(6000) == ("InsufficientFunds", "Not enough funds")


def test_build_legacy_index(counter_schema):
    """Test legacy IDL: inline account bodies and derived discriminators."""
    assert counter_schema.name == "counter"
    key = hashlib.sha256(b"account:Counter").digest()[:8]
    assert counter_schema.account_index[key].name == "Counter"
    assert counter_schema.resolve("Counter") is counter_schema.account_index[key]

    ix_key = hashlib.sha256(b"global:increment_by").digest()[:8]
    op = counter_schema.operation_index[ix_key]
    assert op.name == "incrementBy"
    assert op.accounts == (
        AccountRole("counter", signer=False, writable=True),
        AccountRole("authority", signer=True, writable=False),
    )


def test_index_is_immutable(vault_schema):
    with pytest.raises(TypeError):
        vault_schema.account_index[b"\x00" * 8] = vault_schema.resolve("Marker")
    with pytest.raises(TypeError):
        vault_schema.type_table["Other"] = vault_schema.resolve("Marker")


def test_to_idl_json_returns_copy(vault_schema, vault_idl):
    dumped = vault_schema.to_idl_json()
    assert dumped == vault_idl
    dumped["metadata"]["name"] = "changed"
    assert vault_schema.to_idl_json()["metadata"]["name"] == "vault"


def test_duplicate_discriminator_overwrites(vault_idl, caplog):
    vault_idl["accounts"][1]["discriminator"] = list(VAULT_DISC)
    schema = build_schema_index(_bytes(vault_idl))
    assert schema.account_index[VAULT_DISC].name == "Marker"
    assert len(schema.account_index) == 1
    assert "Duplicate account discriminator" in caplog.text


def test_invalid_json_is_schema_error():
    with pytest.raises(SchemaError) as excinfo:
        build_schema_index(b"{not json")
    assert excinfo.value.code == ErrorCode.INVALID_SCHEMA_BYTES

    with pytest.raises(SchemaError):
        build_schema_index(b"\xff\xfe\x00garbage")


def test_non_object_document_is_schema_error():
    with pytest.raises(SchemaError) as excinfo:
        build_schema_index(b"[1, 2, 3]")
    assert excinfo.value.code == ErrorCode.INVALID_SCHEMA_STRUCTURE


def test_structurally_invalid_idl_is_schema_error(vault_idl):
    vault_idl["instructions"][0]["args"] = "amount"
    with pytest.raises(SchemaError) as excinfo:
        build_schema_index(_bytes(vault_idl))
    assert excinfo.value.code == ErrorCode.INVALID_SCHEMA_STRUCTURE
    assert "instructions" in excinfo.value.path


def test_missing_program_name_is_schema_error():
    with pytest.raises(SchemaError):
        build_schema_index_from_dict({"instructions": [], "accounts": [], "types": []})


def test_unresolved_type_reference_is_schema_error(vault_idl):
    vault_idl["types"][0]["type"]["fields"][2]["type"] = {"defined": {"name": "Missing"}}
    with pytest.raises(SchemaError) as excinfo:
        build_schema_index(_bytes(vault_idl))
    assert excinfo.value.code == ErrorCode.UNRESOLVED_TYPE
    assert excinfo.value.path == ["Vault", "state"]


def test_account_without_type_is_schema_error(vault_idl):
    vault_idl["accounts"].append({"name": "Ghost", "discriminator": [9, 9, 9, 9, 9, 9, 9, 9]})
    with pytest.raises(SchemaError) as excinfo:
        build_schema_index(_bytes(vault_idl))
    assert excinfo.value.code == ErrorCode.UNRESOLVED_TYPE


def test_bad_discriminator_length_is_schema_error(vault_idl):
    vault_idl["instructions"][0]["discriminator"] = [1, 2, 3]
    with pytest.raises(SchemaError) as excinfo:
        build_schema_index(_bytes(vault_idl))
    assert excinfo.value.code == ErrorCode.INVALID_DISCRIMINATOR


def test_self_referential_type_builds():
    idl = {
        "metadata": {"name": "list"},
        "types": [
            {
                "name": "Node",
                "type": {
                    "kind": "struct",
                    "fields": [
                        {"name": "value", "type": "u8"},
                        {"name": "next", "type": {"option": {"defined": {"name": "Node"}}}},
                    ],
                },
            }
        ],
    }
    schema = build_schema_index(_bytes(idl))
    node = schema.resolve("Node")
    assert node.fields[1].type == OptionType(DefinedType("Node"))


def test_alias_type(vault_idl):
    vault_idl["types"].append({"name": "Amount", "type": {"kind": "type", "alias": "u64"}})
    schema = build_schema_index(_bytes(vault_idl))
    amount = schema.resolve("Amount")
    assert amount.kind == "alias"
    assert amount.alias == PrimitiveType("u64")
