"""
Anvil service factory.
Creates anvil EVM nodes for testing.
"""

from collections.abc import Callable

import flexitest

from chaincontainers import AnvilContainer, RuntimeConfig, StartedAnvilContainer
from chaincontainers.config import ServiceType
from common.service import ContainerService
from factories.base import ContainerFactory


class AnvilFactory(ContainerFactory):
    """
    Factory for creating anvil nodes.

    Usage:
        factory = AnvilFactory("./contracts")
        anvil = factory.create_anvil(lambda c: c.with_random_mnemonic())
        anvil.started.addresses()
    """

    def __init__(self, contracts_dir: str, config: RuntimeConfig | None = None):
        super().__init__()
        self._contracts_dir = contracts_dir
        self._config = config

    @flexitest.with_ectx("ctx")
    def create_anvil(
        self,
        configure: Callable[[AnvilContainer], AnvilContainer] | None = None,
        **kwargs,
    ) -> ContainerService[StartedAnvilContainer]:
        """
        Start an anvil node; ``configure`` may add flags before launch.
        """
        ctx: flexitest.EnvContext = kwargs["ctx"]

        container = AnvilContainer(config=self._config).with_contracts_dir(self._contracts_dir)
        if configure is not None:
            container = configure(container)
        return self._launch(ctx, ServiceType.Anvil, container)
