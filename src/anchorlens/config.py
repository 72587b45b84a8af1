"""Runtime configuration for the orchestrator, RPC accessor and CLI."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from anchorlens.kernel.decoder import DEFAULT_MAX_DEPTH
from anchorlens.kernel.instruction import DEFAULT_MAX_INNER_DEPTH


DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

ENV_PREFIX = "ANCHORLENS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class LensConfig(BaseModel):
    """Settings shared by AnchorLens and RpcChainAccessor."""
    rpc_url: str = DEFAULT_RPC_URL
    commitment: str = "confirmed"
    cache_schemas: bool = True
    request_timeout: float = Field(30.0, gt=0, description="HTTP timeout per RPC request, in seconds")
    max_type_depth: int = Field(DEFAULT_MAX_DEPTH, ge=1)
    max_inner_depth: int = Field(DEFAULT_MAX_INNER_DEPTH, ge=0)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "LensConfig":
        """Read ``ANCHORLENS_*`` variables; explicit keyword overrides win.

        Overrides set to None are ignored so CLI defaults can be passed through.
        """
        env = os.environ if environ is None else environ
        values = {}
        if env.get(ENV_PREFIX + "RPC_URL"):
            values["rpc_url"] = env[ENV_PREFIX + "RPC_URL"]
        if env.get(ENV_PREFIX + "COMMITMENT"):
            values["commitment"] = env[ENV_PREFIX + "COMMITMENT"]
        if env.get(ENV_PREFIX + "CACHE_SCHEMAS"):
            values["cache_schemas"] = env[ENV_PREFIX + "CACHE_SCHEMAS"].strip().lower() in _TRUE_VALUES
        if env.get(ENV_PREFIX + "REQUEST_TIMEOUT"):
            values["request_timeout"] = env[ENV_PREFIX + "REQUEST_TIMEOUT"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
