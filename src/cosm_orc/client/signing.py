"""
Signing helpers shared by the fee resolver and the transaction pipeline.

Transactions use SIGN_MODE_DIRECT with a single secp256k1 signer.
"""

from __future__ import annotations

from cosmpy.protos.cosmos.crypto.secp256k1.keys_pb2 import PubKey
from cosmpy.protos.cosmos.tx.signing.v1beta1.signing_pb2 import SignMode
from cosmpy.protos.cosmos.tx.v1beta1.tx_pb2 import (
    AuthInfo,
    Fee,
    ModeInfo,
    SignDoc,
    SignerInfo,
    TxBody,
    TxRaw,
)
from google.protobuf.any_pb2 import Any as ProtoAny
from google.protobuf.message import EncodeError, Message

from ..config.cfg import is_valid_chain_id, is_valid_denom
from ..config.key import SigningKey
from .errors import ChainIdError, DenomError, ProtoEncodingError


def to_any(msg: Message) -> ProtoAny:
    """Wrap a message in ``google.protobuf.Any`` (``/package.Type`` url)."""
    packed = ProtoAny()
    try:
        packed.Pack(msg, type_url_prefix="/")
    except EncodeError as exc:
        raise ProtoEncodingError(f"cannot encode {msg.DESCRIPTOR.full_name}: {exc}") from exc
    return packed


def check_chain_id(chain_id: str) -> str:
    if not is_valid_chain_id(chain_id):
        raise ChainIdError(chain_id)
    return chain_id


def check_denom(denom: str) -> str:
    if not is_valid_denom(denom):
        raise DenomError(denom)
    return denom


def auth_info(key: SigningKey, sequence: int, fee: Fee) -> AuthInfo:
    signer = SignerInfo(
        public_key=to_any(PubKey(key=key.public_key_bytes)),
        mode_info=ModeInfo(single=ModeInfo.Single(mode=SignMode.SIGN_MODE_DIRECT)),
        sequence=sequence,
    )
    return AuthInfo(signer_infos=[signer], fee=fee)


def sign_tx(
    body: TxBody,
    info: AuthInfo,
    chain_id: str,
    account_number: int,
    key: SigningKey,
) -> TxRaw:
    """
    Build the canonical sign doc and sign it.

    Args:
        body: Transaction body
        info: Auth info (signer + fee)
        chain_id: Chain id the signature is bound to
        account_number: Signer account number
        key: Signing key

    Returns:
        Raw signed transaction ready for broadcast
    """
    try:
        body_bytes = body.SerializeToString()
        auth_info_bytes = info.SerializeToString()
        sign_doc = SignDoc(
            body_bytes=body_bytes,
            auth_info_bytes=auth_info_bytes,
            chain_id=chain_id,
            account_number=account_number,
        ).SerializeToString()
    except EncodeError as exc:
        raise ProtoEncodingError(f"cannot encode sign doc: {exc}") from exc

    signature = key.sign(sign_doc)
    return TxRaw(body_bytes=body_bytes, auth_info_bytes=auth_info_bytes, signatures=[signature])
