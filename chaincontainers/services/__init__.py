"""
Container wrappers for test infrastructure.
"""

from chaincontainers.services.anvil import AnvilContainer, StartedAnvilContainer
from chaincontainers.services.solana import (
    SolanaValidatorContainer,
    StartedSolanaValidatorContainer,
    random_pubkey,
)
from chaincontainers.services.wiremock import StartedWiremockContainer, WiremockContainer

__all__ = [
    "AnvilContainer",
    "StartedAnvilContainer",
    "SolanaValidatorContainer",
    "StartedSolanaValidatorContainer",
    "random_pubkey",
    "WiremockContainer",
    "StartedWiremockContainer",
]
