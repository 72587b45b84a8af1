"""JSON-RPC chain accessor (internal).

Implements the ChainAccessor collaborator over HTTP with ``requests``.
All network access lives here; decoding never blocks on I/O.
"""

import base64
import itertools
import logging
from typing import Any, Dict, List, Optional

import requests

from anchorlens.config import LensConfig
from anchorlens.contracts import RawAccount
from anchorlens.kernel.message import FetchedTransaction
from anchorlens._internal.idl_account import idl_address, idl_json_from_account


logger = logging.getLogger(__name__)


class ChainAccessError(Exception):
    """Raised when the RPC endpoint fails or the requested object does not exist."""
    pass


class RpcChainAccessor:
    """Fetches accounts, IDLs and transactions from a Solana JSON-RPC endpoint."""

    def __init__(
        self,
        url: str,
        commitment: str = "confirmed",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.commitment = commitment
        self.timeout = timeout
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, config: LensConfig, session: Optional[requests.Session] = None) -> "RpcChainAccessor":
        return cls(config.rpc_url, commitment=config.commitment, timeout=config.request_timeout, session=session)

    def _call(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug("RPC %s %s", method, params[0] if params else "")
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            raise ChainAccessError(f"{method} request to {self.url} failed: {e}") from e
        except ValueError as e:
            raise ChainAccessError(f"{method} returned a non-JSON response: {e}") from e
        if not isinstance(body, dict):
            raise ChainAccessError(f"{method} returned a malformed response: {body!r}")
        if body.get("error"):
            error = body["error"]
            raise ChainAccessError(f"{method} failed: {error.get('message', error)}")
        return body.get("result")

    def fetch_raw_account(self, address: str) -> RawAccount:
        result = self._call("getAccountInfo", [address, {"encoding": "base64", "commitment": self.commitment}])
        value = (result or {}).get("value")
        if value is None:
            raise ChainAccessError(f"Account not found: {address}")
        data_field = value.get("data")
        data_b64 = data_field[0] if isinstance(data_field, list) else data_field
        return RawAccount(
            address=address,
            owner=value["owner"],
            data=base64.b64decode(data_b64 or ""),
            lamports=value.get("lamports", 0),
            executable=value.get("executable", False),
            rent_epoch=value.get("rentEpoch", 0),
        )

    def fetch_schema_bytes(self, program_id: str) -> bytes:
        """Fetch and decompress a program's IDL.

        Accepts either the program id or the IDL account address itself.
        """
        account = self.fetch_raw_account(program_id)
        if account.executable:
            account = self.fetch_raw_account(idl_address(program_id))
        return idl_json_from_account(account.data)

    def fetch_transaction(self, signature: str) -> FetchedTransaction:
        result = self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            raise ChainAccessError(f"Transaction not found: {signature}")
        return FetchedTransaction.from_rpc_result(result)

    def close(self) -> None:
        self.session.close()
