"""WireMock environment."""

from typing import cast

import flexitest

from chaincontainers.config import ServiceType
from factories.wiremock import WiremockFactory


class WiremockEnvConfig(flexitest.EnvConfig):
    """WireMock loaded with the stubs under ``mappings_dir``."""

    def __init__(self, mappings_dir: str):
        self.mappings_dir = mappings_dir

    def init(self, ectx: flexitest.EnvContext) -> flexitest.LiveEnv:
        factory = cast(WiremockFactory, ectx.get_factory(ServiceType.Wiremock))
        wiremock = factory.create_wiremock(self.mappings_dir)
        return flexitest.LiveEnv({ServiceType.Wiremock: wiremock})
