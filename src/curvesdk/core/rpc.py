"""
Async Solana JSON-RPC client.

Only the handful of methods the SDK needs: blockhash, account data,
simulation, submission and transaction lookup.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import RpcError

logger = logging.getLogger(__name__)


class SolanaRpcClient:
    """
    Simple async Solana RPC client.

    Every call opens a short-lived session; errors returned by the node are
    raised as ``RpcError``.
    """

    def __init__(self, rpc_url: str, commitment: str = "confirmed", timeout: float = 30.0):
        """
        Initialize RPC client.

        Args:
            rpc_url: RPC endpoint URL
            commitment: Default commitment level for reads
            timeout: Total seconds allowed per request
        """
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout = timeout
        self._request_id = 0

    async def _call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make an RPC call."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        logger.debug("rpc_call method=%s id=%d", method, self._request_id)

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.post(self.rpc_url, json=payload) as response:
                response.raise_for_status()
                result = await response.json()
                if "error" in result:
                    logger.warning("rpc_error method=%s error=%s", method, result["error"])
                    raise RpcError(result["error"])
                return result.get("result")

    async def get_health(self) -> str:
        """Check node health."""
        return await self._call("getHealth")

    async def get_latest_blockhash(self, commitment: Optional[str] = None) -> Dict:
        """Latest blockhash and its last valid block height."""
        result = await self._call(
            "getLatestBlockhash", [{"commitment": commitment or self.commitment}]
        )
        return result["value"]

    async def get_account_info(self, pubkey: str) -> Optional[Dict]:
        """Account info with base64 data, or None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [pubkey, {"encoding": "base64", "commitment": self.commitment}],
        )
        return result.get("value") if result else None

    async def simulate_transaction(self, tx: str, options: Optional[Dict] = None) -> Dict:
        """Simulate a base64-encoded transaction."""
        params: List[Any] = [tx]
        params.append(options or {"encoding": "base64", "commitment": self.commitment})
        return await self._call("simulateTransaction", params)

    async def send_transaction(self, signed_tx: str, options: Optional[Dict] = None) -> str:
        """Send a signed, base64-encoded transaction."""
        params: List[Any] = [signed_tx]
        params.append(options or {"encoding": "base64"})
        return await self._call("sendTransaction", params)

    async def get_transaction(self, signature: str, encoding: str = "jsonParsed") -> Optional[Dict]:
        """Confirmed transaction by signature."""
        return await self._call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": encoding,
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
