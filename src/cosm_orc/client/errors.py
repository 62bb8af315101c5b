"""
Client errors - failures raised while talking to the chain.

Every error carries the structured context needed to diagnose it without
re-querying the node (chain id, denom, account id, or the full chain
response for rejections).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .response import ChainResponse


class ClientError(RuntimeError):
    exit_code: int = 1


# ============ Configuration / credentials ============


class ConfigurationError(ClientError):
    """Detected before any network call; never retried."""

    exit_code = 2


class ChainIdError(ConfigurationError):
    def __init__(self, chain_id: str) -> None:
        super().__init__(f"invalid chain id: {chain_id!r}")
        self.chain_id = chain_id


class DenomError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"invalid denomination: {name!r}")
        self.name = name


class MnemonicError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("invalid mnemonic")


class DerivationPathError(ConfigurationError):
    def __init__(self, path: str) -> None:
        super().__init__(f"invalid derivation path: {path!r}")
        self.path = path


class AdminAddressError(ConfigurationError):
    def __init__(self, address: str) -> None:
        super().__init__(f"invalid admin address: {address!r}")
        self.address = address


class InstantiatePermsError(ConfigurationError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid instantiate permissions: {reason}")


class CryptoError(ClientError):
    exit_code = 3


# ============ Encoding ============


class ProtoEncodingError(ClientError):
    exit_code = 4


class ProtoDecodingError(ClientError):
    exit_code = 4


class DeserializeError(ValueError):
    """Raised when a response payload cannot be decoded as JSON."""


# ============ Transport ============


class TransportError(ClientError):
    exit_code = 5


class RpcError(TransportError):
    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.code = code


class NodeNotReadyError(RpcError):
    """The node is not serving yet (connection refused or garbled reply)."""


class GrpcError(TransportError):
    pass


# ============ Chain ============


class AccountError(ClientError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"account not found on chain: {account_id!r}")
        self.account_id = account_id


class CosmosSdkError(ClientError):
    """The chain rejected the request (pre-check, delivery or query code)."""

    exit_code = 6

    def __init__(self, res: "ChainResponse") -> None:
        super().__init__(
            f"CosmosSDK error: code={res.code} log={res.log!r} "
            f"gas_wanted={res.gas_wanted} gas_used={res.gas_used}"
        )
        self.res = res

    @property
    def code(self) -> int:
        return self.res.code

    @property
    def log(self) -> str:
        return self.res.log


class EventNotFoundError(ClientError):
    """A committed transaction lacks an event its message kind must emit."""

    def __init__(self, event_type: str, key: Optional[str] = None) -> None:
        what = f"{event_type}.{key}" if key else event_type
        super().__init__(f"expected event missing from chain response: {what}")
        self.event_type = event_type
        self.key = key
