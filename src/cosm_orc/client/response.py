"""
Chain responses - immutable snapshots of a single chain interaction.

Tendermint reports transaction results as JSON dicts; these helpers turn
them into typed values that the orchestrator and the gas profiler share.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import DeserializeError


@dataclass(frozen=True)
class Event:
    """ABCI event: a type string plus ordered key/value attributes."""

    type: str
    attributes: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ChainResponse:
    code: int = 0
    data: Optional[bytes] = None
    log: str = ""
    gas_wanted: int = 0
    gas_used: int = 0
    events: tuple[Event, ...] = field(default=(), repr=False)

    @property
    def is_ok(self) -> bool:
        return self.code == 0

    @classmethod
    def from_tx_result(cls, result: dict[str, Any]) -> "ChainResponse":
        """Build from a ``check_tx`` / ``deliver_tx`` / ``tx_result`` dict."""
        data = result.get("data")
        return cls(
            code=int(result.get("code") or 0),
            data=base64.b64decode(data) if data else None,
            log=result.get("log") or "",
            gas_wanted=int(result.get("gas_wanted") or 0),
            gas_used=int(result.get("gas_used") or 0),
            events=tuple(_parse_event(e) for e in result.get("events") or []),
        )

    def data_json(self) -> Any:
        """Decode ``data`` as JSON (smart query results are JSON documents)."""
        if not self.data:
            raise DeserializeError("raw tendermint response is empty")
        try:
            return json.loads(self.data)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DeserializeError(f"response data is not JSON: {exc}") from exc


def _strict_b64(value: str) -> Optional[str]:
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def _decode_value(value: str) -> str:
    decoded = _strict_b64(value)
    return value if decoded is None else decoded


def _parse_event(raw: dict[str, Any]) -> Event:
    attrs = [(a.get("key") or "", a.get("value") or "") for a in raw.get("attributes") or []]

    # Tendermint 0.34 base64-encodes keys and values. Attribute keys are
    # short identifiers ("code_id", "_contract_address", "sender") that are
    # never valid strict base64 themselves, so decode only when every key is.
    decoded_keys = [_strict_b64(k) for k, _ in attrs]
    if attrs and all(k and k.isprintable() for k in decoded_keys):
        attrs = [
            (str(k), _decode_value(v))
            for k, (_, v) in zip(decoded_keys, attrs)
        ]

    return Event(type=raw.get("type", ""), attributes=tuple(attrs))


# ============ Per-operation responses ============


@dataclass(frozen=True)
class TxCommit:
    """A committed transaction: both result codes were OK."""

    tx_hash: str
    height: int
    res: ChainResponse


@dataclass(frozen=True)
class StoreCodeResponse:
    code_id: int
    res: ChainResponse
    tx_hash: str
    height: int

    def data(self) -> Any:
        return self.res.data_json()


@dataclass(frozen=True)
class InstantiateResponse:
    address: str
    res: ChainResponse
    tx_hash: str
    height: int

    def data(self) -> Any:
        return self.res.data_json()


@dataclass(frozen=True)
class ExecResponse:
    res: ChainResponse
    tx_hash: str
    height: int

    def data(self) -> Any:
        return self.res.data_json()


@dataclass(frozen=True)
class QueryResponse:
    res: ChainResponse

    def data(self) -> Any:
        return self.res.data_json()


@dataclass(frozen=True)
class MigrateResponse:
    res: ChainResponse
    tx_hash: str
    height: int

    def data(self) -> Any:
        return self.res.data_json()
