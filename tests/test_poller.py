"""Tests for block polling and its timeout."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest
from conftest import FakeCosmWasmClient

from cosm_orc.client import cosmwasm
from cosm_orc.client.cosmwasm import CosmWasmClient
from cosm_orc.client.errors import NodeNotReadyError, RpcError
from cosm_orc.config.cfg import ChainCfg, Config
from cosm_orc.orchestrator.async_api import AsyncCosmOrc
from cosm_orc.orchestrator.errors import PollBlockError, PollTimeoutError


class FakeRpc:
    """Height source: each ``latest_block_height`` call advances one block."""

    def __init__(self, start: int = 100, not_ready: int = 0, health_error: Optional[Exception] = None) -> None:
        self.height = start
        self.not_ready = not_ready
        self.health_error = health_error
        self.health_calls = 0
        self.height_calls = 0

    async def health(self) -> None:
        self.health_calls += 1
        if self.health_error is not None:
            raise self.health_error
        if self.not_ready:
            self.not_ready -= 1
            raise NodeNotReadyError("starting")

    async def latest_block_height(self) -> int:
        self.height_calls += 1
        height = self.height
        self.height += 1
        return height

    async def aclose(self) -> None:
        pass


@pytest.fixture(autouse=True)
def fast_poll(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cosmwasm, "POLL_INTERVAL", 0)


def _client(chain_cfg: ChainCfg, rpc: FakeRpc) -> CosmWasmClient:
    return CosmWasmClient(chain_cfg, rpc=rpc, simulator=object())


class TestPollForNBlocks:
    def test_waits_for_n_blocks(self, chain_cfg: ChainCfg) -> None:
        rpc = FakeRpc(start=100)

        height = asyncio.run(_client(chain_cfg, rpc).poll_for_n_blocks(3))

        assert height == 103
        assert rpc.health_calls == 0

    def test_zero_blocks_returns_immediately(self, chain_cfg: ChainCfg) -> None:
        rpc = FakeRpc(start=100)

        assert asyncio.run(_client(chain_cfg, rpc).poll_for_n_blocks(0)) == 100
        assert rpc.height_calls == 1

    def test_first_block_retries_not_ready(self, chain_cfg: ChainCfg) -> None:
        rpc = FakeRpc(start=1, not_ready=3)

        asyncio.run(_client(chain_cfg, rpc).poll_for_n_blocks(1, is_first_block=True))

        assert rpc.health_calls == 4

    def test_first_block_propagates_other_errors(self, chain_cfg: ChainCfg) -> None:
        rpc = FakeRpc(health_error=RpcError("bad request", code=-32600))

        with pytest.raises(RpcError) as exc_info:
            asyncio.run(_client(chain_cfg, rpc).poll_for_n_blocks(1, is_first_block=True))
        assert exc_info.value.code == -32600
        assert rpc.health_calls == 1


class StalledClient(FakeCosmWasmClient):
    async def poll_for_n_blocks(self, n: int, is_first_block: bool = False) -> int:
        await asyncio.sleep(3600)
        return n


class TestTimeout:
    def test_timeout_is_distinct_from_transport_errors(self, config: Config) -> None:
        orc = AsyncCosmOrc(config, client=StalledClient())

        with pytest.raises(PollTimeoutError) as exc_info:
            asyncio.run(orc.poll_for_n_blocks(5, timeout=0.01))

        assert isinstance(exc_info.value, PollBlockError)
        assert not isinstance(exc_info.value, RpcError)
        assert exc_info.value.n == 5

    def test_completes_within_timeout(self, config: Config, fake_client: FakeCosmWasmClient) -> None:
        orc = AsyncCosmOrc(config, client=fake_client)

        asyncio.run(orc.poll_for_n_blocks(2, timeout=5, is_first_block=True))

        assert fake_client.calls == [("poll_for_n_blocks", (2, True))]
