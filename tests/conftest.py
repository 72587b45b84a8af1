"""Pytest configuration and shared IDL fixtures.

No sys.path hacks - tests should import from installed anchorlens package.
No network: RPC behavior is tested against fake sessions and accessors.
"""

import os
import json
import struct
from pathlib import Path

import pytest

from anchorlens.kernel.idl import build_schema_index


VAULT_PROGRAM = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
MEMO_PROGRAM = "Memo1UhkJRfHyvLMcVucJwxXeuD728EqVDDwQDxFMNo"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
SYSTEM_PROGRAM = "11111111111111111111111111111111"
PAYER = "8szGkuLTAux9XMgZ2vtY39jVSowEcpBfFfD8hXSEqdGC"
VAULT_ACCOUNT = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

DEPOSIT_DISC = bytes([242, 35, 198, 137, 82, 225, 242, 182])
CLOSE_DISC = bytes([98, 165, 201, 177, 108, 65, 206, 96])
VAULT_DISC = bytes([211, 8, 232, 43, 2, 152, 117, 119])
MARKER_DISC = bytes([1, 2, 3, 4, 5, 6, 7, 8])


VAULT_IDL = {
    "address": VAULT_PROGRAM,
    "metadata": {"name": "vault", "version": "0.1.0", "spec": "0.1.0"},
    "instructions": [
        {
            "name": "deposit",
            "discriminator": list(DEPOSIT_DISC),
            "accounts": [
                {"name": "owner", "writable": True, "signer": True},
                {"name": "vault", "writable": True},
                {"name": "referrer", "optional": True},
                {
                    "name": "programs",
                    "accounts": [
                        {"name": "token_program"},
                        {"name": "system_program"},
                    ],
                },
            ],
            "args": [
                {"name": "amount", "type": "u64"},
                {"name": "memo", "type": {"option": "string"}},
            ],
        },
        {
            "name": "close",
            "discriminator": list(CLOSE_DISC),
            "accounts": [
                {"name": "owner", "signer": True},
                {"name": "vault", "writable": True},
            ],
            "args": [],
        },
    ],
    "accounts": [
        {"name": "Vault", "discriminator": list(VAULT_DISC)},
        {"name": "Marker", "discriminator": list(MARKER_DISC)},
    ],
    "types": [
        {
            "name": "Vault",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "owner", "type": "pubkey"},
                    {"name": "balance", "type": "u64"},
                    {"name": "state", "type": {"defined": {"name": "VaultState"}}},
                    {"name": "history", "type": {"vec": {"defined": {"name": "Entry"}}}},
                ],
            },
        },
        {"name": "Marker", "type": {"kind": "struct", "fields": []}},
        {
            "name": "VaultState",
            "type": {
                "kind": "enum",
                "variants": [
                    {"name": "Open"},
                    {"name": "Locked", "fields": [{"name": "until", "type": "i64"}]},
                    {"name": "Migrated", "fields": ["pubkey"]},
                ],
            },
        },
        {
            "name": "Entry",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "delta", "type": "i64"},
                    {"name": "slot", "type": "u64"},
                ],
            },
        },
    ],
    "errors": [
        {"code": 6000, "name": "InsufficientFunds", "msg": "Not enough funds"},
    ],
}


LEGACY_COUNTER_IDL = {
    "version": "0.1.0",
    "name": "counter",
    "instructions": [
        {
            "name": "incrementBy",
            "accounts": [
                {"name": "counter", "isMut": True, "isSigner": False},
                {"name": "authority", "isMut": False, "isSigner": True},
            ],
            "args": [{"name": "amount", "type": "u32"}],
        }
    ],
    "accounts": [
        {
            "name": "Counter",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "authority", "type": "publicKey"},
                    {"name": "count", "type": "u64"},
                    {"name": "label", "type": "string"},
                    {"name": "tags", "type": {"array": ["u8", 4]}},
                ],
            },
        }
    ],
    "types": [],
}


def pytest_sessionfinish(session, exitstatus):
    """Best-effort cleanup for basetemp on Windows without patching pytest internals."""
    if os.name != "nt":
        return
    basetemp = getattr(session.config.option, "basetemp", None)
    if not basetemp:
        return
    basetemp_path = Path(basetemp)
    if not basetemp_path.exists():
        return
    try:
        import shutil
        shutil.rmtree(basetemp_path)
    except (PermissionError, OSError):
        # If cleanup fails, let it surface as a warning rather than masking errors.
        import warnings
        warnings.warn(f"Could not remove basetemp: {basetemp_path}")


@pytest.fixture
def vault_idl():
    return json.loads(json.dumps(VAULT_IDL))


@pytest.fixture
def vault_schema():
    return build_schema_index(json.dumps(VAULT_IDL).encode("utf-8"))


@pytest.fixture
def counter_schema():
    return build_schema_index(json.dumps(LEGACY_COUNTER_IDL).encode("utf-8"))


@pytest.fixture
def deposit_data():
    """deposit(amount=500, memo=None)."""
    return DEPOSIT_DISC + struct.pack("<Q", 500) + b"\x00"
