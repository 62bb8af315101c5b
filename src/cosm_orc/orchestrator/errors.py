"""Orchestrator errors: tracker state, payload, wasm upload and polling failures."""

from __future__ import annotations

from pathlib import Path


class ContractMapError(LookupError):
    """Local tracker-state error, always raised before any network call."""

    exit_code: int = 7

    def __init__(self, message: str, name: str) -> None:
        super().__init__(message)
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class NotStoredError(ContractMapError):
    def __init__(self, name: str) -> None:
        super().__init__(f"smart contract not stored on chain: {name!r}", name)


class NotDeployedError(ContractMapError):
    def __init__(self, name: str) -> None:
        super().__init__(f"smart contract with addr not initialized on chain: {name!r}", name)


class ProcessError(RuntimeError):
    exit_code: int = 1


class JsonSerializeError(ProcessError):
    """The caller-supplied message could not be serialized to JSON."""


class StoreError(RuntimeError):
    exit_code: int = 1


class WasmDirError(StoreError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"error reading wasm_dir: {path}")
        self.path = path


class WasmFileError(StoreError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"error reading wasm file: {path}")
        self.path = path


class PollBlockError(RuntimeError):
    exit_code: int = 8


class PollTimeoutError(PollBlockError, TimeoutError):
    """The target height was not reached in time; nothing to roll back."""

    def __init__(self, n: int, timeout: float) -> None:
        super().__init__(f"timed out after {timeout}s waiting for {n} block(s)")
        self.n = n
        self.timeout = timeout
