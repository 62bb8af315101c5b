"""
CosmWasm client - store, instantiate, execute, query and migrate contracts.

Mutating calls go through the transaction pipeline and recover the
chain-assigned identifiers from the committed events. Queries are plain
ABCI reads and are never signed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from cosmpy.crypto.address import Address
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin as ProtoCoin
from cosmpy.protos.cosmwasm.wasm.v1 import types_pb2
from cosmpy.protos.cosmwasm.wasm.v1.query_pb2 import (
    QuerySmartContractStateRequest,
    QuerySmartContractStateResponse,
)
from cosmpy.protos.cosmwasm.wasm.v1.tx_pb2 import (
    MsgExecuteContract,
    MsgInstantiateContract,
    MsgMigrateContract,
    MsgStoreCode,
)
from google.protobuf.message import DecodeError, Message

from ..config.cfg import ChainCfg, Coin, parse_url
from ..config.key import SigningKey
from .account import Simulator, make_simulator
from .errors import AdminAddressError, InstantiatePermsError, NodeNotReadyError, ProtoDecodingError
from .events import code_id_from, contract_address_from
from .response import (
    ChainResponse,
    ExecResponse,
    InstantiateResponse,
    MigrateResponse,
    QueryResponse,
    StoreCodeResponse,
    TxCommit,
)
from .rpc import TendermintRpc
from .signing import to_any
from .tx import send_tx

logger = logging.getLogger(__name__)

SMART_QUERY_PATH = "/cosmwasm.wasm.v1.Query/SmartContractState"

# seconds between block height checks
POLL_INTERVAL = 0.5


# ============ Instantiate permissions ============


class AccessType(str, Enum):
    NOBODY = "Nobody"
    ONLY_ADDRESS = "OnlyAddress"
    EVERYBODY = "Everybody"


_PROTO_ACCESS = {
    AccessType.NOBODY: "ACCESS_TYPE_NOBODY",
    AccessType.ONLY_ADDRESS: "ACCESS_TYPE_ONLY_ADDRESS",
    AccessType.EVERYBODY: "ACCESS_TYPE_EVERYBODY",
}

# wasmd >= 0.31 dropped ACCESS_TYPE_ONLY_ADDRESS
_ANY_OF_ADDRESSES = "ACCESS_TYPE_ANY_OF_ADDRESSES"


def _proto_access_type(permission: AccessType) -> int:
    name = _PROTO_ACCESS[permission]
    if name not in types_pb2.AccessType.keys() and permission is AccessType.ONLY_ADDRESS:
        name = _ANY_OF_ADDRESSES
    try:
        return types_pb2.AccessType.Value(name)
    except ValueError as exc:
        raise InstantiatePermsError(f"{permission.value} is not supported by the wasm protos") from exc


@dataclass(frozen=True)
class AccessConfig:
    """Who may instantiate a stored code id."""

    permission: AccessType
    address: Optional[str] = None

    def to_proto(self) -> types_pb2.AccessConfig:
        """
        Raises:
            InstantiatePermsError: If the address does not fit the permission
        """
        try:
            permission = AccessType(self.permission)
        except ValueError as exc:
            raise InstantiatePermsError(f"unknown permission {self.permission!r}") from exc

        if permission is AccessType.ONLY_ADDRESS:
            if not self.address:
                raise InstantiatePermsError("OnlyAddress requires an address")
        elif self.address:
            raise InstantiatePermsError(f"{permission.value} does not take an address")

        access_type = _proto_access_type(permission)
        proto = types_pb2.AccessConfig(permission=access_type)
        if self.address:
            # wasmd >= 0.31 replaced `address` with `addresses`
            fields = types_pb2.AccessConfig.DESCRIPTOR.fields_by_name
            if "address" in fields and types_pb2.AccessType.Name(access_type) != _ANY_OF_ADDRESSES:
                proto.address = self.address
            else:
                proto.addresses.append(self.address)
        return proto


def _funds(funds: Optional[Sequence[Coin]]) -> list[ProtoCoin]:
    return [ProtoCoin(denom=c.denom, amount=str(c.amount)) for c in funds or ()]


def check_admin(admin: str, prefix: str) -> str:
    """
    Raises:
        AdminAddressError: If ``admin`` is not a bech32 address for ``prefix``
    """
    hrp = admin.rsplit("1", 1)[0] if "1" in admin else ""
    if hrp != prefix:
        raise AdminAddressError(admin)
    try:
        Address(admin)
    except (RuntimeError, ValueError) as exc:
        raise AdminAddressError(admin) from exc
    return admin


# ============ Client ============


class CosmWasmClient:
    """
    CosmWasm contract client bound to one chain.

    Args:
        cfg: Chain configuration
        rpc: Tendermint RPC client (default: built from ``cfg.rpc_endpoint``)
        simulator: Gas simulation backend (default: gRPC when configured,
            ABCI otherwise)
    """

    def __init__(
        self,
        cfg: ChainCfg,
        rpc: Optional[TendermintRpc] = None,
        simulator: Optional[Simulator] = None,
    ) -> None:
        self.cfg = cfg
        self.rpc = rpc or TendermintRpc(parse_url(cfg.rpc_endpoint))
        self.simulator = simulator or make_simulator(cfg, self.rpc)

    async def aclose(self) -> None:
        await self.rpc.aclose()

    async def _send(self, msg: Message, key: SigningKey, account_id: str) -> TxCommit:
        return await send_tx(self.rpc, self.simulator, to_any(msg), key, account_id, self.cfg)

    async def store(
        self,
        payload: bytes,
        key: SigningKey,
        instantiate_perms: Optional[AccessConfig] = None,
    ) -> StoreCodeResponse:
        """
        Upload wasm bytecode.

        Returns:
            StoreCodeResponse with the chain-assigned code id
        """
        account_id = key.to_account_id(self.cfg.prefix)
        msg = MsgStoreCode(sender=account_id, wasm_byte_code=payload)
        if instantiate_perms is not None:
            msg.instantiate_permission.CopyFrom(instantiate_perms.to_proto())

        commit = await self._send(msg, key, account_id)
        code_id = code_id_from(commit.res)
        logger.info("stored code id %d (tx %s)", code_id, commit.tx_hash)
        return StoreCodeResponse(code_id=code_id, res=commit.res, tx_hash=commit.tx_hash, height=commit.height)

    async def instantiate(
        self,
        code_id: int,
        payload: bytes,
        key: SigningKey,
        admin: Optional[str] = None,
        funds: Optional[Sequence[Coin]] = None,
        label: str = "cosm-orc",
    ) -> InstantiateResponse:
        """
        Instantiate a stored code id.

        Raises:
            AdminAddressError: If ``admin`` is not an address of this chain
        """
        if admin is not None:
            check_admin(admin, self.cfg.prefix)

        account_id = key.to_account_id(self.cfg.prefix)
        msg = MsgInstantiateContract(
            sender=account_id,
            admin=admin or "",
            code_id=code_id,
            label=label,
            msg=payload,
            funds=_funds(funds),
        )

        commit = await self._send(msg, key, account_id)
        address = contract_address_from(commit.res)
        logger.info("instantiated code id %d at %s (tx %s)", code_id, address, commit.tx_hash)
        return InstantiateResponse(address=address, res=commit.res, tx_hash=commit.tx_hash, height=commit.height)

    async def execute(
        self,
        address: str,
        payload: bytes,
        key: SigningKey,
        funds: Optional[Sequence[Coin]] = None,
    ) -> ExecResponse:
        account_id = key.to_account_id(self.cfg.prefix)
        msg = MsgExecuteContract(sender=account_id, contract=address, msg=payload, funds=_funds(funds))

        commit = await self._send(msg, key, account_id)
        return ExecResponse(res=commit.res, tx_hash=commit.tx_hash, height=commit.height)

    async def query(self, address: str, payload: bytes) -> QueryResponse:
        """Run a smart query; the contract's JSON answer is in ``res.data``."""
        req = QuerySmartContractStateRequest(address=address, query_data=payload)
        res = await self.rpc.abci_query(SMART_QUERY_PATH, req.SerializeToString())
        try:
            reply = QuerySmartContractStateResponse.FromString(res.value)
        except DecodeError as exc:
            raise ProtoDecodingError(f"cannot decode smart query reply: {exc}") from exc
        return QueryResponse(res=ChainResponse(code=res.code, data=reply.data, log=res.log))

    async def migrate(
        self,
        address: str,
        new_code_id: int,
        payload: bytes,
        key: SigningKey,
    ) -> MigrateResponse:
        account_id = key.to_account_id(self.cfg.prefix)
        msg = MsgMigrateContract(sender=account_id, contract=address, code_id=new_code_id, msg=payload)

        commit = await self._send(msg, key, account_id)
        logger.info("migrated %s to code id %d (tx %s)", address, new_code_id, commit.tx_hash)
        return MigrateResponse(res=commit.res, tx_hash=commit.tx_hash, height=commit.height)

    # ============ Block polling ============

    async def poll_for_n_blocks(self, n: int, is_first_block: bool = False) -> int:
        """
        Wait until ``n`` more blocks have been committed.

        Without a timeout this can wait forever; callers bound it.

        Args:
            n: Number of blocks to wait for
            is_first_block: Wait for the node to start serving first; only
                NodeNotReadyError is retried while waiting

        Returns:
            The last observed height
        """
        if is_first_block:
            await self._wait_until_serving()

        target = await self.rpc.latest_block_height() + n
        height = target - n
        while height < target:
            await asyncio.sleep(POLL_INTERVAL)
            height = await self.rpc.latest_block_height()
            logger.debug("block height %d, waiting for %d", height, target)
        return height

    async def _wait_until_serving(self) -> None:
        while True:
            try:
                await self.rpc.health()
                await self.rpc.latest_block_height()
                return
            except NodeNotReadyError as exc:
                logger.debug("node not ready: %s", exc)
            await asyncio.sleep(POLL_INTERVAL)
