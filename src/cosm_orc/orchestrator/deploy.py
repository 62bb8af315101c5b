"""
ContractMap - tracks which contracts are stored and deployed.

A contract goes from unknown, to stored (code id known), to deployed
(address known). Lookups fail with distinct errors so callers can tell
"store it first" apart from "instantiate it first".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import NotDeployedError, NotStoredError

ContractName = str


@dataclass
class DeployInfo:
    code_id: Optional[int] = None
    address: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"code_id": self.code_id, "address": self.address}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DeployInfo":
        return cls(code_id=payload.get("code_id"), address=payload.get("address"))


class ContractMap:
    """Maps a human-assigned contract name to its :class:`DeployInfo`."""

    def __init__(self, deploy_info: Optional[Mapping[ContractName, DeployInfo]] = None) -> None:
        self._map: dict[ContractName, DeployInfo] = {}
        for name, info in (deploy_info or {}).items():
            self._map[name] = DeployInfo(code_id=info.code_id, address=info.address)

    def register_contract(self, name: ContractName, code_id: int) -> None:
        """Set (or overwrite) the code id for ``name``; the address is kept."""
        self._map.setdefault(name, DeployInfo()).code_id = code_id

    def code_id(self, name: ContractName) -> int:
        """
        Return the stored code id for ``name``.

        Raises:
            NotStoredError: If ``name`` is unknown or has no code id
        """
        info = self._map.get(name)
        if info is None or info.code_id is None:
            raise NotStoredError(name)
        return info.code_id

    def address(self, name: ContractName) -> str:
        """
        Return the deployed address for ``name``.

        Raises:
            NotStoredError: If ``name`` is unknown
            NotDeployedError: If ``name`` is known but not instantiated
        """
        info = self._map.get(name)
        if info is None:
            raise NotStoredError(name)
        if info.address is None:
            raise NotDeployedError(name)
        return info.address

    def add_address(self, name: ContractName, address: str) -> None:
        """Set (or overwrite) the address for ``name``; the code id is kept."""
        self._map.setdefault(name, DeployInfo()).address = address

    def deploy_info(self) -> Mapping[ContractName, DeployInfo]:
        return dict(self._map)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: info.to_dict() for name, info in sorted(self._map.items())}

    def __contains__(self, name: object) -> bool:
        return name in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __repr__(self) -> str:
        return f"ContractMap({self._map!r})"
