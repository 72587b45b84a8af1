"""Test public API surface - ensure imports work correctly and no side effects.

This test verifies:
- anchorlens.api exposes the decode entry points and the orchestrator
- The root package re-exports them without exposing _internal
"""

import types

from conftest import MARKER_DISC


def test_api_exports_core_functions():
    """Test that anchorlens.api exports the three decode entry points."""
    from anchorlens.api import build_schema_index, decode_account, decode_transaction

    for func in (build_schema_index, decode_account, decode_transaction):
        assert isinstance(func, types.FunctionType)


def test_api_functions_work_on_fixtures(vault_idl):
    """Test that the root exports work end to end on a tiny IDL."""
    import json

    from anchorlens import build_schema_index, decode_account

    schema = build_schema_index(json.dumps(vault_idl).encode("utf-8"))
    assert decode_account(schema, MARKER_DISC) == ("Marker", {})


def test_root_exports():
    import anchorlens

    for name in ("AnchorLens", "LensConfig", "SchemaError", "DecodeError", "DiscriminatorMismatch",
                 "AccountMetaStatus", "InMemorySchemaCache", "LockedSchemaCache"):
        assert name in anchorlens.__all__
        assert hasattr(anchorlens, name)


def test_internal_not_accessible_from_public():
    """_internal is importable for the CLI and orchestrator but is not public API."""
    import anchorlens
    import anchorlens._internal.rpc  # noqa: F401

    assert "_internal" not in anchorlens.__all__
    assert "RpcChainAccessor" not in anchorlens.__all__


def test_errors_share_a_base_class():
    from anchorlens import AnchorLensError, DecodeError, DiscriminatorMismatch, SchemaError

    for exc in (DecodeError, DiscriminatorMismatch, SchemaError):
        assert issubclass(exc, AnchorLensError)
