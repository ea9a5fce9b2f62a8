"""Service factories for creating test containers."""

from factories.anvil import AnvilFactory
from factories.solana import SolanaValidatorFactory
from factories.wiremock import WiremockFactory

__all__ = ["AnvilFactory", "SolanaValidatorFactory", "WiremockFactory"]
