"""Solana validator environment."""

from typing import cast

import flexitest

from chaincontainers.config import ServiceType
from factories.solana import SolanaValidatorFactory


class SolanaEnvConfig(flexitest.EnvConfig):
    def __init__(self, slots_per_epoch: int | None = None):
        self.slots_per_epoch = slots_per_epoch

    def init(self, ectx: flexitest.EnvContext) -> flexitest.LiveEnv:
        factory = cast(SolanaValidatorFactory, ectx.get_factory(ServiceType.SolanaValidator))
        validator = factory.create_validator(slots_per_epoch=self.slots_per_epoch)
        return flexitest.LiveEnv({ServiceType.SolanaValidator: validator})
