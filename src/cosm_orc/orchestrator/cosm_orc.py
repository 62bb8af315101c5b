"""
Blocking orchestrator.

Same surface as :class:`AsyncCosmOrc`; each call runs the async
implementation to completion on a private event loop. Not usable from
inside a running event loop (use the async API there).
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Coroutine, Optional, Sequence, TypeVar

from ..client.cosmwasm import AccessConfig, CosmWasmClient
from ..client.response import (
    ExecResponse,
    InstantiateResponse,
    MigrateResponse,
    QueryResponse,
    StoreCodeResponse,
)
from ..config.cfg import Coin, Config
from ..config.key import SigningKey
from .async_api import AsyncCosmOrc
from .deploy import ContractMap
from .gas_profiler import CallSite, Report

T = TypeVar("T")


class CosmOrc:
    """
    Stores CosmWasm contracts and executes their messages, blocking.

    Example:
        >>> cfg = Config.from_yaml("config.yaml")
        >>> with CosmOrc(cfg, use_gas_profiler=True) as orc:
        ...     orc.store_contracts("artifacts/", key)
        ...     orc.instantiate("cw20_base", "init", {"name": "t"}, key)
    """

    def __init__(
        self,
        cfg: Config,
        use_gas_profiler: bool = False,
        client: Optional[CosmWasmClient] = None,
    ) -> None:
        self._loop = asyncio.new_event_loop()
        self._orc = AsyncCosmOrc(cfg, use_gas_profiler=use_gas_profiler, client=client)

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        return self._loop.run_until_complete(coro)

    @property
    def contract_map(self) -> ContractMap:
        return self._orc.contract_map

    def __repr__(self) -> str:
        return f"CosmOrc({self.contract_map!r})"

    def close(self) -> None:
        if self._loop.is_closed():
            return
        try:
            self._run(self._orc.aclose())
        finally:
            self._loop.close()

    def __enter__(self) -> "CosmOrc":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # Coroutines execute inside event loop frames, so unless one is passed
    # the call site is captured here, in the caller's frame.

    def store_contract(
        self,
        contract_name: str,
        wasm: bytes,
        key: SigningKey,
        instantiate_perms: Optional[AccessConfig] = None,
        call_site: Optional[CallSite] = None,
    ) -> StoreCodeResponse:
        return self._run(
            self._orc.store_contract(contract_name, wasm, key, instantiate_perms, call_site or CallSite.capture())
        )

    def store_contracts(
        self,
        wasm_dir: Path | str,
        key: SigningKey,
        instantiate_perms: Optional[AccessConfig] = None,
        call_site: Optional[CallSite] = None,
    ) -> list[StoreCodeResponse]:
        return self._run(
            self._orc.store_contracts(wasm_dir, key, instantiate_perms, call_site or CallSite.capture())
        )

    def instantiate(
        self,
        contract_name: str,
        op_name: str,
        msg: Any,
        key: SigningKey,
        admin: Optional[str] = None,
        funds: Optional[Sequence[Coin]] = None,
        call_site: Optional[CallSite] = None,
    ) -> InstantiateResponse:
        return self._run(
            self._orc.instantiate(contract_name, op_name, msg, key, admin, funds, call_site or CallSite.capture())
        )

    def execute(
        self,
        contract_name: str,
        op_name: str,
        msg: Any,
        key: SigningKey,
        funds: Optional[Sequence[Coin]] = None,
        call_site: Optional[CallSite] = None,
    ) -> ExecResponse:
        return self._run(
            self._orc.execute(contract_name, op_name, msg, key, funds, call_site or CallSite.capture())
        )

    def query(self, contract_name: str, msg: Any) -> QueryResponse:
        return self._run(self._orc.query(contract_name, msg))

    def migrate(
        self,
        contract_name: str,
        new_code_id: int,
        op_name: str,
        msg: Any,
        key: SigningKey,
        call_site: Optional[CallSite] = None,
    ) -> MigrateResponse:
        return self._run(
            self._orc.migrate(contract_name, new_code_id, op_name, msg, key, call_site or CallSite.capture())
        )

    def poll_for_n_blocks(self, n: int, timeout: float, is_first_block: bool = False) -> None:
        self._run(self._orc.poll_for_n_blocks(n, timeout, is_first_block))

    def gas_profiler_report(self) -> Optional[Report]:
        return self._orc.gas_profiler_report()

    def profiler_reports(self) -> list[Report]:
        return self._orc.profiler_reports()
