"""
Async orchestrator - store CosmWasm contracts and run their messages.

Every operation resolves the contract's tracked state before touching the
network, so a contract that was never stored (or never instantiated)
fails fast. The tracker and the profilers are only updated after the chain
accepted the transaction.
"""

from __future__ import annotations

import asyncio
import json
import logging
import platform
from pathlib import Path
from typing import Any, Optional, Sequence

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
from .deploy import ContractMap
from .errors import JsonSerializeError, PollTimeoutError, WasmDirError, WasmFileError
from .gas_profiler import GAS_PROFILER_NAME, CallSite, CommandType, GasProfiler, Profiler, Report

logger = logging.getLogger(__name__)

STORE_OP = "Store"


def to_payload(msg: Any) -> bytes:
    """
    Compact JSON encoding of a contract message.

    Raises:
        JsonSerializeError: If ``msg`` is not JSON serializable
    """
    try:
        return json.dumps(msg, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise JsonSerializeError(f"cannot serialize message: {exc}") from exc


def wasm_files(wasm_dir: Path | str) -> list[Path]:
    """Sorted ``*.wasm`` files directly inside ``wasm_dir``."""
    return sorted(p for p in Path(wasm_dir).iterdir() if p.suffix == ".wasm" and p.is_file())


def contract_name_for(wasm_path: Path) -> str:
    """``cw20_base-aarch64.wasm`` -> ``cw20_base`` on an aarch64 host."""
    name = wasm_path.stem
    arch_suffix = f"-{platform.machine()}"
    if name.endswith(arch_suffix):
        name = name[: -len(arch_suffix)]
    return name


class AsyncCosmOrc:
    """
    Async CosmWasm orchestrator.

    Tracks stored/deployed contracts by name and optionally profiles gas.
    Callers must not issue concurrent transactions from the same key.

    Args:
        cfg: Chain configuration plus the deploy state to start from
        use_gas_profiler: Record gas usage of every mutating call
        client: CosmWasm client (default: built from ``cfg.chain_cfg``)
    """

    def __init__(
        self,
        cfg: Config,
        use_gas_profiler: bool = False,
        client: Optional[CosmWasmClient] = None,
    ) -> None:
        self.cfg = cfg
        self.contract_map = ContractMap(cfg.contract_deploy_info)
        self.client = client or CosmWasmClient(cfg.chain_cfg)
        self.profilers: list[Profiler] = [GasProfiler()] if use_gas_profiler else []

    def __repr__(self) -> str:
        return f"AsyncCosmOrc({self.contract_map!r})"

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "AsyncCosmOrc":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def _instrument(
        self,
        contract: str,
        op_label: str,
        op_kind: CommandType,
        res: Any,
        call_site: CallSite,
    ) -> None:
        for profiler in self.profilers:
            profiler.instrument(contract, op_label, op_kind, res, call_site)

    # ============ Store ============

    async def store_contract(
        self,
        contract_name: str,
        wasm: bytes,
        key: SigningKey,
        instantiate_perms: Optional[AccessConfig] = None,
        call_site: Optional[CallSite] = None,
    ) -> StoreCodeResponse:
        """
        Upload one wasm binary and register it under ``contract_name``.

        Args:
            contract_name: Name used by later instantiate/execute/query calls
            wasm: Wasm bytecode
            key: Signing key
            instantiate_perms: Who may instantiate the code (default: chain default)
            call_site: Source location for the gas report (default: caller)
        """
        call_site = call_site or CallSite.capture()
        logger.info("storing %s (%d bytes)", contract_name, len(wasm))

        res = await self.client.store(wasm, key, instantiate_perms)

        self.contract_map.register_contract(contract_name, res.code_id)
        self._instrument(contract_name, STORE_OP, CommandType.STORE, res.res, call_site)
        return res

    async def store_contracts(
        self,
        wasm_dir: Path | str,
        key: SigningKey,
        instantiate_perms: Optional[AccessConfig] = None,
        call_site: Optional[CallSite] = None,
    ) -> list[StoreCodeResponse]:
        """
        Upload every ``*.wasm`` file in ``wasm_dir``.

        The file stem (minus an ``-<arch>`` suffix left by the optimizer)
        becomes the contract name.

        Raises:
            WasmDirError: If ``wasm_dir`` cannot be listed
            WasmFileError: If a wasm file cannot be read
        """
        call_site = call_site or CallSite.capture()
        wasm_dir = Path(wasm_dir)
        try:
            paths = wasm_files(wasm_dir)
        except OSError as exc:
            raise WasmDirError(wasm_dir) from exc

        responses = []
        for path in paths:
            try:
                wasm = path.read_bytes()
            except OSError as exc:
                raise WasmFileError(path) from exc
            responses.append(
                await self.store_contract(contract_name_for(path), wasm, key, instantiate_perms, call_site)
            )
        return responses

    # ============ Contract calls ============

    async def instantiate(
        self,
        contract_name: str,
        op_name: str,
        msg: Any,
        key: SigningKey,
        admin: Optional[str] = None,
        funds: Optional[Sequence[Coin]] = None,
        call_site: Optional[CallSite] = None,
    ) -> InstantiateResponse:
        """
        Instantiate a stored contract.

        Args:
            contract_name: Stored contract name
            op_name: Operation label for the gas report (also the on-chain label)
            msg: InstantiateMsg, any JSON serializable value
            key: Signing key
            admin: Optional admin address allowed to migrate the contract
            funds: Optional tokens sent along

        Raises:
            NotStoredError: If ``contract_name`` has no code id yet
        """
        call_site = call_site or CallSite.capture()
        code_id = self.contract_map.code_id(contract_name)
        payload = to_payload(msg)

        res = await self.client.instantiate(code_id, payload, key, admin=admin, funds=funds, label=op_name)

        self.contract_map.add_address(contract_name, res.address)
        self._instrument(contract_name, op_name, CommandType.INSTANTIATE, res.res, call_site)
        logger.debug("%s", res.res)
        return res

    async def execute(
        self,
        contract_name: str,
        op_name: str,
        msg: Any,
        key: SigningKey,
        funds: Optional[Sequence[Coin]] = None,
        call_site: Optional[CallSite] = None,
    ) -> ExecResponse:
        """
        Execute a message on a deployed contract.

        Raises:
            NotStoredError: If ``contract_name`` is unknown
            NotDeployedError: If ``contract_name`` is not instantiated
        """
        call_site = call_site or CallSite.capture()
        address = self.contract_map.address(contract_name)
        payload = to_payload(msg)

        res = await self.client.execute(address, payload, key, funds=funds)

        self._instrument(contract_name, op_name, CommandType.EXECUTE, res.res, call_site)
        logger.debug("%s", res.res)
        return res

    async def query(self, contract_name: str, msg: Any) -> QueryResponse:
        address = self.contract_map.address(contract_name)
        payload = to_payload(msg)

        res = await self.client.query(address, payload)
        logger.debug("%s", res.res)
        return res

    async def migrate(
        self,
        contract_name: str,
        new_code_id: int,
        op_name: str,
        msg: Any,
        key: SigningKey,
        call_site: Optional[CallSite] = None,
    ) -> MigrateResponse:
        """
        Migrate a deployed contract to ``new_code_id``; its address is kept.

        Raises:
            NotStoredError: If ``contract_name`` is unknown
            NotDeployedError: If ``contract_name`` is not instantiated
        """
        call_site = call_site or CallSite.capture()
        address = self.contract_map.address(contract_name)
        payload = to_payload(msg)

        res = await self.client.migrate(address, new_code_id, payload, key)

        self.contract_map.register_contract(contract_name, new_code_id)
        self._instrument(contract_name, op_name, CommandType.MIGRATE, res.res, call_site)
        logger.debug("%s", res.res)
        return res

    # ============ Blocks ============

    async def poll_for_n_blocks(self, n: int, timeout: float, is_first_block: bool = False) -> None:
        """
        Wait until ``n`` blocks have been committed.

        Args:
            n: Number of blocks
            timeout: Seconds before giving up
            is_first_block: Set when waiting on a freshly started node

        Raises:
            PollTimeoutError: If ``timeout`` elapsed first
        """
        try:
            await asyncio.wait_for(self.client.poll_for_n_blocks(n, is_first_block), timeout)
        except asyncio.TimeoutError as exc:
            raise PollTimeoutError(n, timeout) from exc

    # ============ Reports ============

    def gas_profiler_report(self) -> Optional[Report]:
        for report in self.profiler_reports():
            if report.name == GAS_PROFILER_NAME:
                return report
        return None

    def profiler_reports(self) -> list[Report]:
        return [p.report() for p in self.profilers]
