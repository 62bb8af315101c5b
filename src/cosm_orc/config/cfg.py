"""
Chain configuration and the persisted contract deploy state.

The configuration document is YAML::

    chain_cfg:
      denom: ujunox
      prefix: juno
      chain_id: testing
      rpc_endpoint: http://localhost:26657
      grpc_endpoint: http://localhost:9090
      gas_prices: 0.1
      gas_adjustment: 1.5
    contract_deploy_info:
      cw20_base:
        code_id: 1
        address: juno1...

Any ``chain_cfg`` field can be overridden with a ``COSM_ORC_<FIELD>``
environment variable (``.env`` files are honoured).
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import jsonschema
import yaml
from dotenv import load_dotenv

from ..client.errors import DenomError
from ..orchestrator.deploy import ContractMap, DeployInfo

ENV_PREFIX = "COSM_ORC_"
SCHEMA_PATH = Path(__file__).with_name("config.schema.json")

_DENOM_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9/:._-]{2,127}$")
_CHAIN_ID_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]{0,49}$")
_FLOAT_FIELDS = ("gas_prices", "gas_adjustment")
_URL_SCHEMES = ("http", "https", "tcp")


class ConfigError(ValueError):
    exit_code: int = 2

    def __init__(self, message: str, errors: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def is_valid_denom(denom: str) -> bool:
    return bool(_DENOM_RE.match(denom))


def is_valid_chain_id(chain_id: str) -> bool:
    return bool(_CHAIN_ID_RE.match(chain_id))


def parse_url(url: str) -> str:
    """
    Normalise an endpoint URL.

    A missing scheme defaults to ``https``; ``tcp://`` (the Tendermint
    convention) is served over plain HTTP.

    Raises:
        ConfigError: If the scheme is not supported
    """
    if "://" not in url:
        return f"https://{url}"

    scheme, rest = url.split("://", 1)
    scheme = scheme.lower()
    if scheme not in _URL_SCHEMES or not rest:
        raise ConfigError(f"unsupported endpoint url: {url!r}")
    if scheme == "tcp":
        scheme = "http"
    return f"{scheme}://{rest}"


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int

    def __post_init__(self) -> None:
        if not is_valid_denom(self.denom):
            raise DenomError(self.denom)
        if self.amount < 0:
            raise ValueError(f"coin amount must be non-negative: {self.amount}")

    @classmethod
    def parse(cls, value: str) -> "Coin":
        """Parse ``"100ujunox"`` into ``Coin("ujunox", 100)``."""
        match = re.match(r"^\s*(\d+)\s*(\S+)\s*$", value)
        if not match:
            raise DenomError(value)
        return cls(denom=match.group(2), amount=int(match.group(1)))

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True)
class ChainCfg:
    denom: str
    prefix: str
    chain_id: str
    rpc_endpoint: str
    gas_prices: float
    gas_adjustment: float
    grpc_endpoint: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "denom": self.denom,
            "prefix": self.prefix,
            "chain_id": self.chain_id,
            "rpc_endpoint": self.rpc_endpoint,
            "gas_prices": self.gas_prices,
            "gas_adjustment": self.gas_adjustment,
        }
        if self.grpc_endpoint:
            result["grpc_endpoint"] = self.grpc_endpoint
        return result


@dataclass
class Config:
    chain_cfg: ChainCfg
    contract_deploy_info: dict[str, DeployInfo] = field(default_factory=dict)
    # chain_cfg as written in the document, before env overrides and URL normalisation
    source_chain_cfg: Optional[dict[str, Any]] = field(default=None, compare=False, repr=False)

    # ---- Loading ----

    @classmethod
    def from_dict(cls, payload: dict[str, Any], env: Optional[dict[str, str]] = None) -> "Config":
        """
        Build a Config from a parsed document.

        Args:
            payload: Parsed configuration document
            env: Environment used for overrides (default: ``os.environ``)

        Raises:
            ConfigError: If the document does not match the schema
        """
        source_chain_cfg = payload.get("chain_cfg")
        payload = _apply_env_overrides(payload, os.environ if env is None else env)
        validate_document(payload)

        raw_chain = payload["chain_cfg"]
        chain_cfg = ChainCfg(
            denom=raw_chain["denom"],
            prefix=raw_chain["prefix"],
            chain_id=raw_chain["chain_id"],
            rpc_endpoint=parse_url(raw_chain["rpc_endpoint"]),
            grpc_endpoint=parse_url(raw_chain["grpc_endpoint"]) if raw_chain.get("grpc_endpoint") else None,
            gas_prices=float(raw_chain["gas_prices"]),
            gas_adjustment=float(raw_chain["gas_adjustment"]),
        )

        deploy_info: dict[str, DeployInfo] = {}
        # legacy shape: `code_ids: {name: id}`
        for name, code_id in (payload.get("code_ids") or {}).items():
            deploy_info[name] = DeployInfo(code_id=code_id)
        for name, info in (payload.get("contract_deploy_info") or {}).items():
            existing = deploy_info.get(name, DeployInfo())
            merged = DeployInfo.from_dict(info or {})
            deploy_info[name] = DeployInfo(
                code_id=merged.code_id if merged.code_id is not None else existing.code_id,
                address=merged.address if merged.address is not None else existing.address,
            )

        return cls(
            chain_cfg=chain_cfg,
            contract_deploy_info=deploy_info,
            source_chain_cfg=dict(source_chain_cfg) if isinstance(source_chain_cfg, dict) else None,
        )

    @classmethod
    def from_yaml(cls, path: Path | str, env_file: Optional[Path] = None) -> "Config":
        """
        Load a Config from a YAML file.

        Args:
            path: Path to the YAML document
            env_file: Optional ``.env`` file loaded before applying overrides

        Raises:
            FileNotFoundError: If ``path`` does not exist
            ConfigError: If the document is malformed
        """
        path = Path(path)
        if env_file is not None:
            load_dotenv(env_file, override=False)
        else:
            load_dotenv(override=False)

        with path.open("r", encoding="utf-8") as f:
            try:
                payload = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"malformed YAML in {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise ConfigError(f"config root must be a mapping: {path}")
        return cls.from_dict(payload)

    # ---- Persistence ----

    def to_dict(self, contract_map: Optional[ContractMap] = None) -> dict[str, Any]:
        if contract_map is not None:
            deploy = contract_map.to_dict()
        else:
            deploy = {name: info.to_dict() for name, info in sorted(self.contract_deploy_info.items())}
        chain = dict(self.source_chain_cfg) if self.source_chain_cfg is not None else self.chain_cfg.to_dict()
        return {"chain_cfg": chain, "contract_deploy_info": deploy}

    def write_deploy_info(self, path: Path | str, contract_map: Optional[ContractMap] = None) -> Path:
        """
        Write the config back out with the current deploy state.

        ``.json`` paths are written as JSON, anything else as YAML.

        Returns:
            The written path
        """
        path = Path(path)
        payload = self.to_dict(contract_map)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            if path.suffix == ".json":
                json.dump(payload, f, indent=2)
                f.write("\n")
            else:
                yaml.safe_dump(payload, f, sort_keys=False)
        os.replace(tmp, path)

        if contract_map is not None:
            self.contract_deploy_info = dict(contract_map.deploy_info())
        return path


# ============ Validation ============


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Validator:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def validate_document(payload: dict[str, Any]) -> None:
    errors = sorted(_validator().iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        formatted = [_format_error(err) for err in errors]
        raise ConfigError("config document is invalid", errors=formatted)


def _format_error(error: jsonschema.ValidationError) -> str:
    path = "/".join(str(part) for part in error.path)
    return f"{path or '<root>'}: {error.message}"


def _apply_env_overrides(payload: dict[str, Any], env: Any) -> dict[str, Any]:
    chain = dict(payload.get("chain_cfg") or {})
    for key in ("denom", "prefix", "chain_id", "rpc_endpoint", "grpc_endpoint", *_FLOAT_FIELDS):
        value = env.get(f"{ENV_PREFIX}{key.upper()}")
        if value is None:
            continue
        if key in _FLOAT_FIELDS:
            try:
                chain[key] = float(value)
            except ValueError as exc:
                raise ConfigError(f"{ENV_PREFIX}{key.upper()} must be a number, got {value!r}") from exc
        else:
            chain[key] = value
    if not chain and "chain_cfg" not in payload:
        return payload
    return {**payload, "chain_cfg": chain}
