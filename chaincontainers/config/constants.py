"""
Constants shared by the container wrappers.
"""

from enum import Enum


class ServiceType(str, Enum):
    """
    Service type identifiers for container wrappers and test environments.

    Using str Enum allows direct string comparison while providing
    IDE autocomplete and type safety.
    """

    Anvil = "anvil"
    SolanaValidator = "solana_validator"
    Wiremock = "wiremock"

    def __str__(self) -> str:
        """Allow direct use in f-strings and format operations."""
        return self.value


class LogVerbosity(str, Enum):
    """Anvil verbosity levels, rendered as a single ``-v...`` token."""

    One = "-v"
    Two = "-vv"
    Three = "-vvv"
    Four = "-vvvv"
    Five = "-vvvvv"

    def __str__(self) -> str:
        return self.value


# Images
ANVIL_IMAGE = "ghcr.io/foundry-rs/foundry:latest"
SOLANA_VALIDATOR_IMAGE = "anzaxyz/agave:stable"
WIREMOCK_IMAGE = "wiremock/wiremock"

# Internal ports
ANVIL_RPC_PORT = 8545
SOLANA_RPC_PORT = 8899
SOLANA_PUBSUB_PORT = 8900
SOLANA_FAUCET_PORT = 9900
WIREMOCK_HTTP_PORT = 8080

# Wiremock directories inside the container
WIREMOCK_HOME = "/home/wiremock"

# Labels attached to every container this package creates
LABEL_MANAGED = "chaincontainers"
LABEL_SERVICE = "chaincontainers.service"

WEI_PER_ETHER = 10**18
LAMPORTS_PER_SOL = 1_000_000_000
