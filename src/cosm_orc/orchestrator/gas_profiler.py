"""
Gas Profiler - per-contract, per-operation gas usage.

Reports are keyed ``contract -> "{CommandType}__{label}"``. Instrumenting
the same key twice keeps only the latest figures.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol

from ..client.response import ChainResponse

GAS_PROFILER_NAME = "gas-profiler"

_PACKAGE_DIR = str(Path(__file__).resolve().parent.parent)
_ASYNCIO_DIR = str(Path(asyncio.__file__).resolve().parent)


class CommandType(str, Enum):
    STORE = "Store"
    INSTANTIATE = "Instantiate"
    QUERY = "Query"
    EXECUTE = "Execute"
    MIGRATE = "Migrate"


@dataclass(frozen=True)
class CallSite:
    """Source location a gas figure is attributed to."""

    file: str
    line: int

    @classmethod
    def capture(cls) -> "CallSite":
        """First stack frame outside this package and the event loop."""
        frame = sys._getframe(1)
        while frame is not None:
            filename = str(Path(frame.f_code.co_filename).resolve())
            if not filename.startswith((_PACKAGE_DIR, _ASYNCIO_DIR)):
                return cls(file=frame.f_code.co_filename, line=frame.f_lineno)
            frame = frame.f_back
        return cls(file="<unknown>", line=0)


@dataclass(frozen=True)
class GasReport:
    gas_wanted: int
    gas_used: int
    file_name: str
    line_number: int


@dataclass(frozen=True)
class Report:
    name: str
    data: dict[str, Any]

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2, sort_keys=True)


class Profiler(Protocol):
    def instrument(
        self,
        contract: str,
        op_label: str,
        op_kind: CommandType,
        response: ChainResponse,
        call_site: CallSite,
    ) -> None:
        ...

    def report(self) -> Report:
        ...


class GasProfiler:
    """Collects ``gas_wanted`` / ``gas_used`` for every mutating call."""

    def __init__(self) -> None:
        self._report: dict[str, dict[str, GasReport]] = {}

    def instrument(
        self,
        contract: str,
        op_label: str,
        op_kind: CommandType,
        response: ChainResponse,
        call_site: CallSite,
    ) -> None:
        # wasm queries don't cost gas
        if op_kind is CommandType.QUERY:
            return

        op_key = f"{op_kind.value}__{op_label}"
        self._report.setdefault(contract, {})[op_key] = GasReport(
            gas_wanted=response.gas_wanted,
            gas_used=response.gas_used,
            file_name=call_site.file,
            line_number=call_site.line,
        )

    def get(self, contract: str, op_key: str) -> Optional[GasReport]:
        return self._report.get(contract, {}).get(op_key)

    def report(self) -> Report:
        data = {
            contract: {key: asdict(entry) for key, entry in ops.items()}
            for contract, ops in self._report.items()
        }
        return Report(name=GAS_PROFILER_NAME, data=data)
