"""
flexitest service adapter over chaincontainers containers.
"""

import logging
import os
from typing import Generic, TypeVar

import flexitest
from docker.errors import DockerException

from chaincontainers import ContainerStoppedError, GenericContainer, StartedContainer

S = TypeVar("S", bound=StartedContainer)


class ContainerService(flexitest.Service, Generic[S]):
    """
    Runs a configured container for the lifetime of a flexitest environment.

    The container is started by ``start()`` and its logs are written to
    ``<datadir>/service.log`` when the environment shuts it down.

    Usage:
        svc = ContainerService(AnvilContainer().json_log_format(), datadir, "anvil")
        svc.start()
        addresses = svc.started.addresses()
        svc.stop()
    """

    def __init__(self, container: GenericContainer, datadir: str, name: str):
        super().__init__({"datadir": datadir})
        self._container = container
        self._started: S | None = None
        self._name = name
        self._logfile = os.path.join(datadir, "service.log")
        self._logger = logging.getLogger(f"service.{name}")

    @property
    def started(self) -> S:
        """The started container facade."""
        if self._started is None:
            raise ContainerStoppedError(f"service '{self._name}' is not running")
        return self._started

    def start(self):
        self._started = self._container.start()  # type: ignore[assignment]
        self.props["container_id"] = self._started.get_id()
        self.props["host"] = self._started.get_host()
        self._logger.info(f"Started container {self._started.get_name()}")

    def stop(self):
        started = self._started
        if started is None:
            return
        self._started = None
        try:
            self._dump_logs(started)
        finally:
            started.stop()

    def _dump_logs(self, started: S):
        try:
            logs = started.logs()
            with open(self._logfile, "w") as f:
                f.write(logs)
        except ContainerStoppedError:
            return
        except (OSError, DockerException) as e:
            self._logger.warning(f"Could not save logs to {self._logfile}: {e}")

    def is_started(self) -> bool:
        return self._started is not None

    def check_status(self) -> bool:
        return self._started is not None and self._started.is_running
