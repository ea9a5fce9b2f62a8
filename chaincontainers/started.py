"""
Facade over a container that has passed its readiness check.
"""

import logging
from typing import TYPE_CHECKING

from docker.models.containers import Container

from chaincontainers.errors import ContainerStoppedError

if TYPE_CHECKING:
    from chaincontainers.container import GenericContainer, RunningContainer


class StartedContainer:
    """
    A running, ready container.

    Service specific facades subclass this and are built from the generic
    instance returned by ``GenericContainer.start()``. Once ``stop()`` has
    been called every operation raises ``ContainerStoppedError``.
    """

    def __init__(self, owner: "GenericContainer", handle: "RunningContainer", container: Container):
        self._owner = owner
        self._handle = handle
        self._container = container
        self._logger = logging.getLogger(f"container.{handle.name}")

    @classmethod
    def wrap(cls, started: "StartedContainer", *args, **kwargs):
        """Build a service facade around an already started container."""
        return cls(started._owner, started._handle, started._container, *args, **kwargs)

    @property
    def handle(self) -> "RunningContainer":
        return self._handle

    @property
    def is_running(self) -> bool:
        return self._owner.is_running

    def _ensure_running(self):
        if not self.is_running:
            raise ContainerStoppedError(f"container '{self._handle.name}' is not running")

    def get_host(self) -> str:
        self._ensure_running()
        return self._handle.host

    def get_mapped_port(self, port: int) -> int:
        self._ensure_running()
        try:
            return self._handle.ports[port]
        except KeyError:
            raise KeyError(f"port {port} is not exposed by '{self._handle.name}'") from None

    def get_id(self) -> str:
        self._ensure_running()
        return self._handle.container_id

    def get_name(self) -> str:
        self._ensure_running()
        return self._handle.name

    def logs(self) -> str:
        """Combined stdout/stderr of the container so far."""
        self._ensure_running()
        return self._container.logs(stdout=True, stderr=True).decode(errors="replace")

    def exec(self, cmd: list[str]) -> tuple[int, str]:
        """Run ``cmd`` inside the container; returns (exit code, output)."""
        self._ensure_running()
        exit_code, output = self._container.exec_run(cmd)
        return exit_code, (output or b"").decode(errors="replace")

    def stop(self):
        """Stop and remove the container. Idempotent."""
        self._owner.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
