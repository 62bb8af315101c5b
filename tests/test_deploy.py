"""Tests for the ContractMap deployment tracker."""

from __future__ import annotations

import pytest

from cosm_orc.orchestrator.deploy import ContractMap, DeployInfo
from cosm_orc.orchestrator.errors import ContractMapError, NotDeployedError, NotStoredError


class TestLookups:
    @pytest.mark.parametrize("name", ["my_contract", "", "cw20_base"])
    def test_unknown_name_is_not_stored(self, name: str) -> None:
        cm = ContractMap()
        with pytest.raises(NotStoredError):
            cm.code_id(name)
        with pytest.raises(NotStoredError):
            cm.address(name)

    def test_registered_without_address_is_not_deployed(self) -> None:
        cm = ContractMap()
        cm.register_contract("my_contract", 42)

        assert cm.code_id("my_contract") == 42
        with pytest.raises(NotDeployedError) as exc_info:
            cm.address("my_contract")
        assert exc_info.value.name == "my_contract"
        assert "my_contract" in str(exc_info.value)

    def test_address_before_code_id(self) -> None:
        """Pre-configured deployments may only know the address."""
        cm = ContractMap()
        cm.add_address("my_contract", "juno1abc")

        assert cm.address("my_contract") == "juno1abc"
        with pytest.raises(NotStoredError):
            cm.code_id("my_contract")

    def test_fields_are_independent(self) -> None:
        cm = ContractMap()
        cm.add_address("my_contract", "juno1abc")
        cm.register_contract("my_contract", 7)

        assert cm.code_id("my_contract") == 7
        assert cm.address("my_contract") == "juno1abc"

    def test_reregister_keeps_address(self) -> None:
        cm = ContractMap()
        cm.register_contract("my_contract", 1337)
        cm.add_address("my_contract", "juno1abc")
        cm.register_contract("my_contract", 1338)

        assert cm.code_id("my_contract") == 1338
        assert cm.address("my_contract") == "juno1abc"

    def test_errors_share_base(self) -> None:
        assert issubclass(NotStoredError, ContractMapError)
        assert issubclass(NotDeployedError, ContractMapError)
        assert NotStoredError("x").exit_code == ContractMapError.exit_code


class TestSeedAndPersist:
    def test_seeded_from_deploy_info(self) -> None:
        cm = ContractMap({"a": DeployInfo(code_id=1), "b": DeployInfo(code_id=2, address="juno1b")})

        assert cm.code_id("a") == 1
        assert cm.address("b") == "juno1b"
        assert "a" in cm
        assert len(cm) == 2

    def test_seed_is_copied(self) -> None:
        seed = {"a": DeployInfo(code_id=1)}
        cm = ContractMap(seed)
        cm.add_address("a", "juno1a")

        assert seed["a"].address is None

    def test_to_dict_is_sorted(self) -> None:
        cm = ContractMap()
        cm.register_contract("zeta", 2)
        cm.add_address("alpha", "juno1a")

        assert list(cm.to_dict()) == ["alpha", "zeta"]
        assert cm.to_dict()["zeta"] == {"code_id": 2, "address": None}

    def test_deploy_info_view(self) -> None:
        cm = ContractMap()
        cm.register_contract("a", 3)

        view = cm.deploy_info()
        assert view["a"] == DeployInfo(code_id=3)
