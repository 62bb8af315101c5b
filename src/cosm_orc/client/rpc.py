"""
Tendermint JSON-RPC client.

Thin async wrapper over httpx: ABCI queries, broadcast-and-commit, node
health and the latest block height. Payload encoding stays with the
callers; this module only moves bytes.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from itertools import count
from typing import Any, Optional

import httpx

from .errors import CosmosSdkError, NodeNotReadyError, RpcError
from .response import ChainResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class AbciQuery:
    code: int
    log: str
    value: bytes
    height: int = 0

    def to_response(self) -> ChainResponse:
        return ChainResponse(code=self.code, data=self.value, log=self.log)


@dataclass(frozen=True)
class BroadcastCommit:
    tx_hash: str
    height: int
    check_tx: ChainResponse
    deliver_tx: ChainResponse


class TendermintRpc:
    """
    Async Tendermint / CometBFT RPC client.

    Args:
        url: RPC endpoint (``http(s)://host:26657``)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self._ids = count(1)
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "abci_query")
            params: RPC parameters

        Returns:
            Result field from the RPC response

        Raises:
            NodeNotReadyError: If the node refuses connections or replies garbage
            RpcError: If the call fails for any other reason
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }
        logger.debug("rpc %s -> %s", method, self.url)

        try:
            response = await self._client.post(self.url, json=payload)
        except (httpx.ConnectError, httpx.RemoteProtocolError) as exc:
            raise NodeNotReadyError(f"{method}: node not reachable at {self.url}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise RpcError(f"{method}: transport error: {exc}") from exc

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise NodeNotReadyError(
                f"{method}: malformed reply (HTTP {response.status_code})"
            ) from exc

        if not isinstance(data, dict):
            raise NodeNotReadyError(f"{method}: malformed reply: {data!r}")

        if data.get("error"):
            error = data["error"]
            if isinstance(error, dict):
                message = error.get("data") or error.get("message") or str(error)
                raise RpcError(f"{method}: RPC error: {message}", code=error.get("code"))
            raise RpcError(f"{method}: RPC error: {error}")

        if response.is_error:
            raise RpcError(f"{method}: HTTP {response.status_code}")

        if "result" not in data:
            raise NodeNotReadyError(f"{method}: reply has no result")
        return data["result"]

    async def abci_query(self, path: str, data: bytes) -> AbciQuery:
        """
        Run an ABCI query against the latest height.

        Raises:
            CosmosSdkError: If the application answers with a non-zero code
        """
        result = await self.call(
            "abci_query",
            {"path": path, "data": data.hex(), "height": "0", "prove": False},
        )
        raw = result.get("response") or {}
        value = raw.get("value")
        res = AbciQuery(
            code=int(raw.get("code") or 0),
            log=raw.get("log") or "",
            value=base64.b64decode(value) if value else b"",
            height=int(raw.get("height") or 0),
        )
        if res.code != 0:
            raise CosmosSdkError(res.to_response())
        return res

    async def broadcast_tx_commit(self, tx_bytes: bytes) -> BroadcastCommit:
        """Submit a signed tx and block until it is included in a block."""
        result = await self.call(
            "broadcast_tx_commit",
            {"tx": base64.b64encode(tx_bytes).decode("ascii")},
        )
        # CometBFT 0.38 renamed deliver_tx to tx_result
        deliver = result.get("deliver_tx") or result.get("tx_result") or {}
        return BroadcastCommit(
            tx_hash=result.get("hash", ""),
            height=int(result.get("height") or 0),
            check_tx=ChainResponse.from_tx_result(result.get("check_tx") or {}),
            deliver_tx=ChainResponse.from_tx_result(deliver),
        )

    async def health(self) -> None:
        await self.call("health")

    async def latest_block_height(self) -> int:
        result = await self.call("block")
        try:
            return int(result["block"]["header"]["height"])
        except (KeyError, TypeError, ValueError) as exc:
            raise NodeNotReadyError("block: no header height in reply") from exc
