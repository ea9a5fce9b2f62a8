"""
WireMock service factory.
"""

import flexitest

from chaincontainers import RuntimeConfig, StartedWiremockContainer, WiremockContainer
from chaincontainers.config import ServiceType
from common.service import ContainerService
from factories.base import ContainerFactory


class WiremockFactory(ContainerFactory):
    def __init__(self, config: RuntimeConfig | None = None):
        super().__init__()
        self._config = config

    @flexitest.with_ectx("ctx")
    def create_wiremock(
        self, mappings_dir: str | None = None, **kwargs
    ) -> ContainerService[StartedWiremockContainer]:
        """Start WireMock, preloaded from ``mappings_dir`` when given."""
        ctx: flexitest.EnvContext = kwargs["ctx"]

        container = WiremockContainer(config=self._config)
        if mappings_dir is not None:
            container.with_mappings(mappings_dir)
        return self._launch(ctx, ServiceType.Wiremock, container)
