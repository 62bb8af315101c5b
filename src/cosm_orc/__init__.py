__all__ = [
    # Orchestrators
    "AsyncCosmOrc",
    "CosmOrc",
    # Config
    "ChainCfg",
    "Coin",
    "Config",
    "ConfigError",
    # Keys
    "Key",
    "Mnemonic",
    "SigningKey",
    # Client
    "AccessConfig",
    "AccessType",
    "CosmWasmClient",
    "ChainResponse",
    "StoreCodeResponse",
    "InstantiateResponse",
    "ExecResponse",
    "QueryResponse",
    "MigrateResponse",
    # Deploy tracking
    "ContractMap",
    "DeployInfo",
    # Gas profiling
    "CallSite",
    "CommandType",
    "GasProfiler",
    "Profiler",
    "Report",
    # Errors
    "ClientError",
    "CosmosSdkError",
    "ContractMapError",
    "NotDeployedError",
    "NotStoredError",
    "PollTimeoutError",
]

from .client.cosmwasm import AccessConfig, AccessType, CosmWasmClient
from .client.errors import ClientError, CosmosSdkError
from .client.response import (
    ChainResponse,
    ExecResponse,
    InstantiateResponse,
    MigrateResponse,
    QueryResponse,
    StoreCodeResponse,
)
from .config.cfg import ChainCfg, Coin, Config, ConfigError
from .config.key import Key, Mnemonic, SigningKey
from .orchestrator.async_api import AsyncCosmOrc
from .orchestrator.cosm_orc import CosmOrc
from .orchestrator.deploy import ContractMap, DeployInfo
from .orchestrator.errors import ContractMapError, NotDeployedError, NotStoredError, PollTimeoutError
from .orchestrator.gas_profiler import CallSite, CommandType, GasProfiler, Profiler, Report
