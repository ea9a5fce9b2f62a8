"""Environment configurations for functional tests."""

from envconfigs.anvil import AnvilEnvConfig
from envconfigs.solana import SolanaEnvConfig
from envconfigs.wiremock import WiremockEnvConfig

__all__ = [
    "AnvilEnvConfig",
    "SolanaEnvConfig",
    "WiremockEnvConfig",
]
