"""
solana-test-validator service factory.
"""

import flexitest

from chaincontainers import RuntimeConfig, SolanaValidatorContainer, StartedSolanaValidatorContainer
from chaincontainers.config import ServiceType
from common.service import ContainerService
from factories.base import ContainerFactory


class SolanaValidatorFactory(ContainerFactory):
    def __init__(self, config: RuntimeConfig | None = None):
        super().__init__()
        self._config = config

    @flexitest.with_ectx("ctx")
    def create_validator(
        self, slots_per_epoch: int | None = None, **kwargs
    ) -> ContainerService[StartedSolanaValidatorContainer]:
        ctx: flexitest.EnvContext = kwargs["ctx"]

        container = SolanaValidatorContainer(config=self._config).with_reset()
        if slots_per_epoch is not None:
            container.with_slots_per_epoch(slots_per_epoch)
        return self._launch(ctx, ServiceType.SolanaValidator, container)
