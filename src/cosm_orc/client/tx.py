"""
Transaction Pipeline - build, price, sign, broadcast and confirm.

Stages::

    BUILT -> FEE_RESOLVED -> SIGNED -> BROADCAST -> COMMITTED | FAILED

Nothing here is retried: a rejected transaction may already have had side
effects, and once broadcast is issued the client cannot cancel it.
"""

from __future__ import annotations

import logging
from enum import Enum

from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import TxBody
from google.protobuf.any_pb2 import Any as ProtoAny

from ..config.cfg import ChainCfg
from ..config.key import SigningKey
from .account import Simulator, account, resolve_fee
from .errors import CosmosSdkError
from .response import TxCommit
from .rpc import TendermintRpc
from .signing import auth_info, check_chain_id, check_denom, sign_tx

logger = logging.getLogger(__name__)

MEMO = "cosm-orc"


class TxStage(str, Enum):
    BUILT = "built"
    FEE_RESOLVED = "fee_resolved"
    SIGNED = "signed"
    BROADCAST = "broadcast"
    COMMITTED = "committed"
    FAILED = "failed"


def build_tx_body(msg: ProtoAny) -> TxBody:
    return TxBody(messages=[msg], memo=MEMO, timeout_height=0)


async def send_tx(
    rpc: TendermintRpc,
    simulator: Simulator,
    msg: ProtoAny,
    key: SigningKey,
    account_id: str,
    cfg: ChainCfg,
) -> TxCommit:
    """
    Run one message through the full pipeline.

    The signer's sequence is read fresh here. Two concurrent calls with the
    same key can observe the same sequence and one of them will be rejected;
    callers must keep at most one transaction in flight per signer.

    Args:
        rpc: Tendermint RPC client
        simulator: Gas simulation backend
        msg: ``Any``-wrapped message
        key: Signing key
        account_id: Bech32 address of ``key``
        cfg: Chain configuration

    Returns:
        The committed transaction (hash, height, delivery result)

    Raises:
        ChainIdError, DenomError: Before any network call
        AccountError: If the signer account cannot be fetched
        CosmosSdkError: If simulation, pre-check or delivery fails
    """
    chain_id = check_chain_id(cfg.chain_id)
    check_denom(cfg.denom)

    body = build_tx_body(msg)
    _stage(TxStage.BUILT, msg.type_url)

    acct = await account(rpc, account_id)
    fee = await resolve_fee(simulator, body, acct, key, cfg)
    _stage(TxStage.FEE_RESOLVED, msg.type_url)

    raw = sign_tx(body, auth_info(key, acct.sequence, fee.to_proto()), chain_id, acct.account_number, key)
    _stage(TxStage.SIGNED, msg.type_url)

    commit = await rpc.broadcast_tx_commit(raw.SerializeToString())
    _stage(TxStage.BROADCAST, msg.type_url)

    if not commit.check_tx.is_ok:
        _stage(TxStage.FAILED, msg.type_url)
        raise CosmosSdkError(commit.check_tx)
    if not commit.deliver_tx.is_ok:
        _stage(TxStage.FAILED, msg.type_url)
        raise CosmosSdkError(commit.deliver_tx)

    _stage(TxStage.COMMITTED, msg.type_url)
    return TxCommit(tx_hash=commit.tx_hash, height=commit.height, res=commit.deliver_tx)


def _stage(stage: TxStage, type_url: str) -> None:
    logger.debug("tx %s: %s", type_url, stage.value)
