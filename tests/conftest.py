"""Shared fixtures: chain config, a test signer and an offline CosmWasm client."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from cosm_orc.client.errors import CosmosSdkError
from cosm_orc.client.response import (
    ChainResponse,
    Event,
    ExecResponse,
    InstantiateResponse,
    MigrateResponse,
    QueryResponse,
    StoreCodeResponse,
)
from cosm_orc.config.cfg import ChainCfg, Config
from cosm_orc.config.key import Mnemonic, SigningKey

# BIP-39 test vector. Never fund it.
TEST_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])

CONTRACT_ADDRESS = "juno14hj2tavq8fpesdwxxcu44rty3hh90vhujrvcmstl4zr3txmfvw9skjuwg8"


@pytest.fixture()
def chain_cfg() -> ChainCfg:
    return ChainCfg(
        denom="ujunox",
        prefix="juno",
        chain_id="testing",
        rpc_endpoint="http://localhost:26657",
        gas_prices=0.025,
        gas_adjustment=1.5,
    )


@pytest.fixture()
def config(chain_cfg: ChainCfg) -> Config:
    return Config(chain_cfg=chain_cfg)


@pytest.fixture()
def signing_key() -> SigningKey:
    return SigningKey(name="validator", key=Mnemonic(TEST_MNEMONIC))


def chain_res(gas_used: int = 100_000, gas_wanted: int = 150_000, **kwargs: Any) -> ChainResponse:
    return ChainResponse(gas_used=gas_used, gas_wanted=gas_wanted, **kwargs)


class FakeCosmWasmClient:
    """
    In-memory stand-in for CosmWasmClient.

    Every call is recorded in ``calls``; setting ``reject`` makes the next
    mutating call fail with a delivery-phase CosmosSdkError.
    """

    def __init__(self, code_id: int = 42, address: str = CONTRACT_ADDRESS) -> None:
        self.code_id = code_id
        self.address = address
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.reject: Optional[ChainResponse] = None
        self.query_data = b'{"count":7}'
        self.closed = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.reject is not None:
            res, self.reject = self.reject, None
            raise CosmosSdkError(res)

    async def store(self, payload: bytes, key: SigningKey, instantiate_perms: Any = None) -> StoreCodeResponse:
        self._record("store", payload)
        res = chain_res(events=(Event("store_code", (("code_id", str(self.code_id)),)),))
        return StoreCodeResponse(code_id=self.code_id, res=res, tx_hash="AA" * 32, height=10)

    async def instantiate(
        self,
        code_id: int,
        payload: bytes,
        key: SigningKey,
        admin: Optional[str] = None,
        funds: Any = None,
        label: str = "cosm-orc",
    ) -> InstantiateResponse:
        self._record("instantiate", code_id, payload, admin, label)
        res = chain_res(gas_used=200_000, gas_wanted=300_000)
        return InstantiateResponse(address=self.address, res=res, tx_hash="BB" * 32, height=11)

    async def execute(self, address: str, payload: bytes, key: SigningKey, funds: Any = None) -> ExecResponse:
        self._record("execute", address, payload)
        return ExecResponse(res=chain_res(gas_used=120_000), tx_hash="CC" * 32, height=12)

    async def query(self, address: str, payload: bytes) -> QueryResponse:
        self._record("query", address, payload)
        return QueryResponse(res=ChainResponse(data=self.query_data))

    async def migrate(self, address: str, new_code_id: int, payload: bytes, key: SigningKey) -> MigrateResponse:
        self._record("migrate", address, new_code_id, payload)
        return MigrateResponse(res=chain_res(gas_used=90_000), tx_hash="DD" * 32, height=13)

    async def poll_for_n_blocks(self, n: int, is_first_block: bool = False) -> int:
        self._record("poll_for_n_blocks", n, is_first_block)
        return n

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_client() -> FakeCosmWasmClient:
    return FakeCosmWasmClient()
