"""Tests for the async and blocking orchestrators, over a fake CosmWasm client."""

from __future__ import annotations

import asyncio
import platform
from pathlib import Path

import pytest
from conftest import CONTRACT_ADDRESS, FakeCosmWasmClient

from cosm_orc.client.errors import CosmosSdkError
from cosm_orc.client.response import ChainResponse
from cosm_orc.config.cfg import Coin, Config
from cosm_orc.config.key import SigningKey
from cosm_orc.orchestrator.async_api import AsyncCosmOrc, contract_name_for, to_payload
from cosm_orc.orchestrator.cosm_orc import CosmOrc
from cosm_orc.orchestrator.deploy import DeployInfo
from cosm_orc.orchestrator.errors import (
    JsonSerializeError,
    NotDeployedError,
    NotStoredError,
    WasmDirError,
)


@pytest.fixture()
def orc(config: Config, fake_client: FakeCosmWasmClient):
    with CosmOrc(config, use_gas_profiler=True, client=fake_client) as orc:
        yield orc


class TestStore:
    def test_store_registers_code_id(self, orc: CosmOrc, signing_key: SigningKey) -> None:
        res = orc.store_contract("my_contract", b"\x00asm", signing_key)

        assert res.code_id == 42
        assert orc.contract_map.code_id("my_contract") == 42

    def test_store_contracts_from_dir(
        self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey, tmp_path: Path
    ) -> None:
        (tmp_path / "cw20_base.wasm").write_bytes(b"\x00asm-cw20")
        (tmp_path / f"cw721_base-{platform.machine()}.wasm").write_bytes(b"\x00asm-cw721")
        (tmp_path / "README.md").write_text("not wasm", encoding="utf-8")

        responses = orc.store_contracts(tmp_path, signing_key)

        assert len(responses) == 2
        assert orc.contract_map.code_id("cw20_base") == 42
        assert orc.contract_map.code_id("cw721_base") == 42
        assert [c[0] for c in fake_client.calls] == ["store", "store"]

    def test_missing_wasm_dir(self, orc: CosmOrc, signing_key: SigningKey, tmp_path: Path) -> None:
        with pytest.raises(WasmDirError):
            orc.store_contracts(tmp_path / "missing", signing_key)

    def test_arch_suffix_trimmed(self) -> None:
        assert contract_name_for(Path(f"a/cw20-{platform.machine()}.wasm")) == "cw20"
        assert contract_name_for(Path("a/cw20-other.wasm")) == "cw20-other"


class TestInstantiate:
    def test_before_store_is_not_stored(
        self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey
    ) -> None:
        with pytest.raises(NotStoredError):
            orc.instantiate("my_contract", "init", {}, signing_key)
        assert fake_client.calls == []

    def test_records_address(self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey) -> None:
        orc.store_contract("my_contract", b"\x00asm", signing_key)
        res = orc.instantiate("my_contract", "init", {"count": 0}, signing_key, funds=[Coin("ujunox", 10)])

        assert res.address == CONTRACT_ADDRESS
        assert orc.contract_map.address("my_contract") == CONTRACT_ADDRESS
        name, args = fake_client.calls[-1]
        assert name == "instantiate"
        assert args[0] == 42
        assert args[1] == b'{"count":0}'
        assert args[3] == "init"

    def test_payload_serialization_error(
        self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey
    ) -> None:
        orc.contract_map.register_contract("my_contract", 1)

        with pytest.raises(JsonSerializeError):
            orc.instantiate("my_contract", "init", {"bad": object()}, signing_key)
        assert fake_client.calls == []


class TestExecuteQueryMigrate:
    def test_execute_before_instantiate(
        self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey
    ) -> None:
        orc.contract_map.register_contract("my_contract", 42)

        with pytest.raises(NotDeployedError):
            orc.execute("my_contract", "inc", {"increment": {}}, signing_key)
        with pytest.raises(NotDeployedError):
            orc.query("my_contract", {"get_count": {}})
        assert fake_client.calls == []

    def test_query_decodes_json(self, orc: CosmOrc, signing_key: SigningKey) -> None:
        orc.contract_map.add_address("my_contract", CONTRACT_ADDRESS)

        assert orc.query("my_contract", {"get_count": {}}).data() == {"count": 7}

    def test_migrate_keeps_address(self, orc: CosmOrc, signing_key: SigningKey) -> None:
        orc.contract_map.register_contract("my_contract", 1337)
        orc.contract_map.add_address("my_contract", CONTRACT_ADDRESS)

        orc.migrate("my_contract", 1338, "upgrade", {}, signing_key)

        assert orc.contract_map.code_id("my_contract") == 1338
        assert orc.contract_map.address("my_contract") == CONTRACT_ADDRESS

    def test_rejection_leaves_tracker_untouched(
        self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey
    ) -> None:
        orc.contract_map.register_contract("my_contract", 42)
        fake_client.reject = ChainResponse(code=5, log="out of gas")

        with pytest.raises(CosmosSdkError):
            orc.instantiate("my_contract", "init", {}, signing_key)

        with pytest.raises(NotDeployedError):
            orc.contract_map.address("my_contract")
        assert orc.gas_profiler_report().data == {}

    def test_rejected_migrate_keeps_code_id(
        self, orc: CosmOrc, fake_client: FakeCosmWasmClient, signing_key: SigningKey
    ) -> None:
        orc.contract_map.register_contract("my_contract", 1337)
        orc.contract_map.add_address("my_contract", CONTRACT_ADDRESS)
        fake_client.reject = ChainResponse(code=5)

        with pytest.raises(CosmosSdkError):
            orc.migrate("my_contract", 1338, "upgrade", {}, signing_key)
        assert orc.contract_map.code_id("my_contract") == 1337


class TestGasReport:
    def test_report_attributes_caller(self, orc: CosmOrc, signing_key: SigningKey) -> None:
        orc.store_contract("my_contract", b"\x00asm", signing_key)
        orc.instantiate("my_contract", "init", {}, signing_key)
        orc.execute("my_contract", "inc", {}, signing_key)
        orc.query("my_contract", {})

        data = orc.gas_profiler_report().data["my_contract"]
        assert set(data) == {"Store__Store", "Instantiate__init", "Execute__inc"}
        assert data["Instantiate__init"]["gas_used"] == 200_000
        assert data["Execute__inc"]["file_name"].endswith("test_orchestrator.py")

    def test_no_profiler(self, config: Config, fake_client: FakeCosmWasmClient) -> None:
        with CosmOrc(config, client=fake_client) as orc:
            assert orc.gas_profiler_report() is None
            assert orc.profiler_reports() == []

    def test_close_closes_client(self, config: Config, fake_client: FakeCosmWasmClient) -> None:
        orc = CosmOrc(config, client=fake_client)
        orc.close()
        orc.close()

        assert fake_client.closed


class TestAsyncApi:
    def test_async_flow(self, config: Config, fake_client: FakeCosmWasmClient, signing_key: SigningKey) -> None:
        async def flow() -> AsyncCosmOrc:
            async with AsyncCosmOrc(config, use_gas_profiler=True, client=fake_client) as orc:
                await orc.store_contract("my_contract", b"\x00asm", signing_key)
                await orc.instantiate("my_contract", "init", {}, signing_key)
                await orc.execute("my_contract", "inc", {}, signing_key)
                return orc

        orc = asyncio.run(flow())

        assert orc.contract_map.address("my_contract") == CONTRACT_ADDRESS
        site = orc.gas_profiler_report().data["my_contract"]["Execute__inc"]
        assert site["file_name"].endswith("test_orchestrator.py")
        assert fake_client.closed

    def test_seeded_from_config(self, config: Config, fake_client: FakeCosmWasmClient) -> None:
        config.contract_deploy_info["cw20"] = DeployInfo(code_id=5, address="juno1cw20")
        orc = AsyncCosmOrc(config, client=fake_client)

        assert orc.contract_map.code_id("cw20") == 5
        assert orc.contract_map.address("cw20") == "juno1cw20"


class TestPayload:
    def test_compact_json(self) -> None:
        assert to_payload({"a": [1, 2], "b": None}) == b'{"a":[1,2],"b":null}'

    def test_not_serializable(self) -> None:
        with pytest.raises(JsonSerializeError):
            to_payload({1, 2})
