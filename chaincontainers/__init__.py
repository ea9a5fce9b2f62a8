"""
Disposable Docker containers for blockchain test infrastructure.
Provides container orchestration, readiness strategies and service facades.
"""

from .cmdline import CommandLine
from .config import LogVerbosity, RuntimeConfig, ServiceType, load_config
from .container import CopyDirective, GenericContainer, LaunchSpec, RunningContainer
from .errors import (
    ChainContainersError,
    ConfigurationError,
    ContainerStoppedError,
    LaunchFailure,
    ReadinessTimeoutError,
    WaitTimeoutError,
)
from .evm import EvmRpc, Web3EvmClient, parse_ether, receipt_status
from .rpc import JsonRpcClient, RpcError
from .services import (
    AnvilContainer,
    SolanaValidatorContainer,
    StartedAnvilContainer,
    StartedSolanaValidatorContainer,
    StartedWiremockContainer,
    WiremockContainer,
    random_pubkey,
)
from .started import StartedContainer
from .strategies import WaitKind, WaitStrategy
from .wait import wait_until, wait_until_with_value

__all__ = [
    "CommandLine",
    "LogVerbosity",
    "RuntimeConfig",
    "ServiceType",
    "load_config",
    "CopyDirective",
    "GenericContainer",
    "LaunchSpec",
    "RunningContainer",
    "StartedContainer",
    "WaitKind",
    "WaitStrategy",
    "ChainContainersError",
    "ConfigurationError",
    "ContainerStoppedError",
    "LaunchFailure",
    "ReadinessTimeoutError",
    "WaitTimeoutError",
    "EvmRpc",
    "Web3EvmClient",
    "parse_ether",
    "receipt_status",
    "JsonRpcClient",
    "RpcError",
    "AnvilContainer",
    "StartedAnvilContainer",
    "SolanaValidatorContainer",
    "StartedSolanaValidatorContainer",
    "random_pubkey",
    "WiremockContainer",
    "StartedWiremockContainer",
    "wait_until",
    "wait_until_with_value",
]
