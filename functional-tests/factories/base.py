"""
Shared start-up for container backed services.
"""

import contextlib

import flexitest

from chaincontainers import GenericContainer
from common.service import ContainerService


class ContainerFactory(flexitest.Factory):
    """
    Base for factories whose services are docker containers.

    Containers publish on ephemeral host ports, so no port range is reserved.
    """

    def __init__(self):
        super().__init__([])

    def _launch(self, ctx: flexitest.EnvContext, name: str, container: GenericContainer):
        datadir = ctx.make_service_dir(name)
        svc: ContainerService = ContainerService(container, datadir, name)
        try:
            svc.start()
        except Exception as e:
            # Ensure cleanup on failure to prevent resource leaks
            with contextlib.suppress(Exception):
                svc.stop()
            raise RuntimeError(f"Failed to start {name} service: {e}") from e
        return svc
