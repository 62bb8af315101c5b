"""
Account/Fee Resolver.

Fetches the signer's on-chain account (number + sequence) and prices a
transaction by simulating it. Simulation does not consume the sequence,
so the simulated envelope and the real one carry the same number.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol
from urllib.parse import urlsplit

import grpc
from cosmpy.protos.cosmos.auth.v1beta1.auth_pb2 import BaseAccount
from cosmpy.protos.cosmos.auth.v1beta1.query_pb2 import QueryAccountRequest, QueryAccountResponse
from cosmpy.protos.cosmos.base.v1beta1.coin_pb2 import Coin as ProtoCoin
from cosmpy.protos.cosmos.tx.v1beta1.service_pb2 import SimulateRequest, SimulateResponse
from cosmpy.protos.cosmos.tx.v1beta1.service_pb2_grpc import ServiceStub
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import Fee as ProtoFee
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import TxBody
from google.protobuf.message import DecodeError

from ..config.cfg import ChainCfg, Coin
from ..config.key import SigningKey
from .errors import AccountError, CosmosSdkError, GrpcError, ProtoDecodingError
from .response import ChainResponse
from .rpc import TendermintRpc
from .signing import auth_info, check_denom, sign_tx

logger = logging.getLogger(__name__)

ACCOUNT_QUERY_PATH = "/cosmos.auth.v1beta1.Query/Account"
SIMULATE_PATH = "/cosmos.tx.v1beta1.Service/Simulate"


@dataclass(frozen=True)
class Account:
    address: str
    account_number: int
    sequence: int


@dataclass(frozen=True)
class Fee:
    amount: Coin
    gas_limit: int

    def to_proto(self) -> ProtoFee:
        return ProtoFee(
            amount=[ProtoCoin(denom=self.amount.denom, amount=str(self.amount.amount))],
            gas_limit=self.gas_limit,
        )


@dataclass(frozen=True)
class GasInfo:
    gas_wanted: int
    gas_used: int


async def account(rpc: TendermintRpc, address: str) -> Account:
    """
    Fetch the current account metadata for ``address``.

    Raises:
        AccountError: If the chain has no account for ``address``
        ProtoDecodingError: If the reply cannot be decoded
    """
    req = QueryAccountRequest(address=address)
    try:
        res = await rpc.abci_query(ACCOUNT_QUERY_PATH, req.SerializeToString())
    except CosmosSdkError as exc:
        raise AccountError(address) from exc

    try:
        reply = QueryAccountResponse.FromString(res.value)
    except DecodeError as exc:
        raise ProtoDecodingError(f"cannot decode account reply: {exc}") from exc
    if not reply.HasField("account"):
        raise AccountError(address)

    try:
        base = BaseAccount.FromString(reply.account.value)
    except DecodeError as exc:
        raise ProtoDecodingError(f"cannot decode {reply.account.type_url}: {exc}") from exc

    return Account(address=address, account_number=base.account_number, sequence=base.sequence)


# ============ Gas simulation ============


class Simulator(Protocol):
    async def simulate(self, tx_bytes: bytes) -> GasInfo:
        ...


class AbciSimulator:
    """Simulate through the Tendermint RPC ``abci_query`` route."""

    def __init__(self, rpc: TendermintRpc) -> None:
        self.rpc = rpc

    async def simulate(self, tx_bytes: bytes) -> GasInfo:
        res = await self.rpc.abci_query(
            SIMULATE_PATH, SimulateRequest(tx_bytes=tx_bytes).SerializeToString()
        )
        try:
            reply = SimulateResponse.FromString(res.value)
        except DecodeError as exc:
            raise ProtoDecodingError(f"cannot decode simulate reply: {exc}") from exc
        return GasInfo(gas_wanted=reply.gas_info.gas_wanted, gas_used=reply.gas_info.gas_used)


class GrpcSimulator:
    """Simulate through the node's gRPC ``cosmos.tx.v1beta1.Service``."""

    def __init__(self, endpoint: str) -> None:
        parts = urlsplit(endpoint)
        self.secure = parts.scheme == "https"
        self.target = parts.netloc or parts.path

    def _channel(self) -> grpc.aio.Channel:
        if self.secure:
            return grpc.aio.secure_channel(self.target, grpc.ssl_channel_credentials())
        return grpc.aio.insecure_channel(self.target)

    async def simulate(self, tx_bytes: bytes) -> GasInfo:
        async with self._channel() as channel:
            stub = ServiceStub(channel)
            try:
                reply = await stub.Simulate(SimulateRequest(tx_bytes=tx_bytes))
            except grpc.aio.AioRpcError as exc:
                if exc.code() == grpc.StatusCode.UNAVAILABLE:
                    raise GrpcError(f"gRPC endpoint unavailable: {self.target}: {exc.details()}") from exc
                raise CosmosSdkError(
                    ChainResponse(code=exc.code().value[0], log=exc.details() or "")
                ) from exc
        return GasInfo(gas_wanted=reply.gas_info.gas_wanted, gas_used=reply.gas_info.gas_used)


def make_simulator(cfg: ChainCfg, rpc: TendermintRpc) -> Simulator:
    if cfg.grpc_endpoint:
        return GrpcSimulator(cfg.grpc_endpoint)
    return AbciSimulator(rpc)


# ============ Fee ============


def compute_fee(gas_used: int, gas_adjustment: float, gas_prices: float, denom: str) -> Fee:
    """
    Price a simulated gas figure.

    ``gas_limit = ceil(gas_used * gas_adjustment)`` and
    ``amount = ceil(gas_limit * gas_prices)``, in decimal arithmetic so
    that configured prices like 0.025 are exact.
    """
    gas_limit = math.ceil(Decimal(gas_used) * Decimal(str(gas_adjustment)))
    amount = math.ceil(Decimal(gas_limit) * Decimal(str(gas_prices)))
    return Fee(amount=Coin(denom=denom, amount=amount), gas_limit=gas_limit)


async def resolve_fee(
    simulator: Simulator,
    body: TxBody,
    acct: Account,
    key: SigningKey,
    cfg: ChainCfg,
) -> Fee:
    """
    Simulate ``body`` and derive the fee for the real transaction.

    Args:
        simulator: Gas simulation backend
        body: Transaction body that will be broadcast
        acct: Signer account (its sequence is reused, not consumed)
        key: Signing key
        cfg: Chain configuration (denom, gas price, gas adjustment)

    Returns:
        Fee for the real transaction
    """
    denom = check_denom(cfg.denom)
    zero_fee = ProtoFee(amount=[ProtoCoin(denom=denom, amount="0")], gas_limit=0)
    raw = sign_tx(body, auth_info(key, acct.sequence, zero_fee), cfg.chain_id, acct.account_number, key)

    gas = await simulator.simulate(raw.SerializeToString())
    fee = compute_fee(gas.gas_used, cfg.gas_adjustment, cfg.gas_prices, denom)
    logger.debug("simulated gas_used=%d -> gas_limit=%d fee=%s", gas.gas_used, fee.gas_limit, fee.amount)
    return fee

