"""
Event Extractor - recover chain-assigned identifiers from committed txs.

The chain gives no ordering guarantee between events, so lookups return
the first occurrence in array order.
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import EventNotFoundError
from .response import ChainResponse, Event

STORE_CODE_EVENT = "store_code"
CODE_ID_ATTRIBUTE = "code_id"
INSTANTIATE_EVENT = "instantiate"
CONTRACT_ADDRESS_ATTRIBUTE = "_contract_address"

_U64_RE = re.compile(r"[0-9]+")
_U64_MAX = 2**64 - 1


def find_event(res: ChainResponse, event_type: str) -> Optional[Event]:
    for event in res.events:
        if event.type == event_type:
            return event
    return None


def find_attribute(event: Event, key: str) -> Optional[str]:
    for attr_key, value in event.attributes:
        if attr_key == key:
            return value
    return None


def require_attribute(res: ChainResponse, event_type: str, key: str) -> str:
    """
    Look up ``event_type.key`` in a delivered transaction.

    Every message kind is known to emit its event, so absence means the
    chain behaved unexpectedly.

    Raises:
        EventNotFoundError: If the event or the attribute is missing
    """
    event = find_event(res, event_type)
    if event is None:
        raise EventNotFoundError(event_type)
    value = find_attribute(event, key)
    if value is None:
        raise EventNotFoundError(event_type, key)
    return value


def code_id_from(res: ChainResponse) -> int:
    raw = require_attribute(res, STORE_CODE_EVENT, CODE_ID_ATTRIBUTE)
    # u64: ASCII digits only, no sign, padding or separators
    if not _U64_RE.fullmatch(raw) or int(raw) > _U64_MAX:
        raise EventNotFoundError(STORE_CODE_EVENT, CODE_ID_ATTRIBUTE)
    return int(raw)


def contract_address_from(res: ChainResponse) -> str:
    return require_attribute(res, INSTANTIATE_EVENT, CONTRACT_ADDRESS_ATTRIBUTE)
