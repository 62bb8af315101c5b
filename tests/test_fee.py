"""Tests for fee computation."""

from __future__ import annotations

import pytest

from cosm_orc.client.account import compute_fee
from cosm_orc.client.errors import DenomError
from cosm_orc.config.cfg import Coin


class TestComputeFee:
    def test_reference_values(self) -> None:
        fee = compute_fee(100_000, 1.5, 0.025, "ujunox")

        assert fee.gas_limit == 150_000
        assert fee.amount == Coin(denom="ujunox", amount=3750)

    def test_rounds_up(self) -> None:
        fee = compute_fee(100_001, 1.5, 0.025, "ujunox")

        # 150001.5 -> 150002 gas; 150002 * 0.025 = 3750.05 -> 3751
        assert fee.gas_limit == 150_002
        assert fee.amount.amount == 3751

    def test_exact_product_is_not_bumped(self) -> None:
        fee = compute_fee(200_000, 1.0, 0.1, "uosmo")

        assert fee.gas_limit == 200_000
        assert fee.amount.amount == 20_000

    def test_zero_gas(self) -> None:
        fee = compute_fee(0, 1.3, 0.025, "ujunox")

        assert fee.gas_limit == 0
        assert fee.amount.amount == 0

    def test_invalid_denom(self) -> None:
        with pytest.raises(DenomError):
            compute_fee(100_000, 1.5, 0.025, "1bad")

    def test_to_proto(self) -> None:
        proto = compute_fee(100_000, 1.5, 0.025, "ujunox").to_proto()

        assert proto.gas_limit == 150_000
        assert proto.amount[0].denom == "ujunox"
        assert proto.amount[0].amount == "3750"
