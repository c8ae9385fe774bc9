"""
Client configuration.

Values come from explicit arguments or from ``CURVESDK_*`` environment
variables, optionally loaded from a ``.env`` file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from solders.pubkey import Pubkey

from .constants import DEFAULT_PROGRAM_ID


# RPC endpoints
DEVNET_RPC = "https://api.devnet.solana.com"
MAINNET_RPC = "https://api.mainnet-beta.solana.com"
LOCALNET_RPC = "http://127.0.0.1:8899"

NETWORK_RPC = {
    "devnet": DEVNET_RPC,
    "mainnet": MAINNET_RPC,
    "localnet": LOCALNET_RPC,
}

DEFAULT_SCHEMA_VERSION = "v2"


def load_env(start: Optional[Path] = None) -> Optional[Path]:
    """Load the nearest .env file from ``start`` or its parent dirs.

    Existing environment variables win. Returns the file that was read.
    """
    current = start or Path.cwd()
    for _ in range(5):  # Check up to 5 parent dirs
        env_file = current / ".env"
        if env_file.exists():
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip())
            return env_file
        current = current.parent
    return None


@dataclass(frozen=True)
class ClientConfig:
    """Connection and program identity for a client instance."""
    rpc_url: str = DEVNET_RPC
    program_id: Pubkey = DEFAULT_PROGRAM_ID
    schema_version: str = DEFAULT_SCHEMA_VERSION
    commitment: str = "confirmed"
    timeout: float = 30.0

    @classmethod
    def from_env(cls, load_dotenv: bool = False) -> "ClientConfig":
        """Build a config from ``CURVESDK_*`` environment variables."""
        if load_dotenv:
            load_env()

        network = os.environ.get("CURVESDK_NETWORK", "devnet").lower()
        if network not in NETWORK_RPC:
            raise ValueError(f"Unknown network: {network}")

        rpc_url = os.environ.get("CURVESDK_RPC_URL") or NETWORK_RPC[network]

        program_id = DEFAULT_PROGRAM_ID
        raw_program_id = os.environ.get("CURVESDK_PROGRAM_ID")
        if raw_program_id:
            try:
                program_id = Pubkey.from_string(raw_program_id)
            except ValueError as exc:
                raise ValueError(f"CURVESDK_PROGRAM_ID is not a valid pubkey: {exc}") from exc

        return cls(
            rpc_url=rpc_url,
            program_id=program_id,
            schema_version=os.environ.get("CURVESDK_SCHEMA_VERSION", DEFAULT_SCHEMA_VERSION),
            commitment=os.environ.get("CURVESDK_COMMITMENT", "confirmed"),
            timeout=float(os.environ.get("CURVESDK_TIMEOUT", "30")),
        )
