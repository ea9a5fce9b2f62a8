"""
WireMock HTTP mock server container.
"""

from pathlib import Path
from typing import Any

import docker
import requests

from chaincontainers.config import RuntimeConfig
from chaincontainers.config.constants import (
    WIREMOCK_HOME,
    WIREMOCK_HTTP_PORT,
    WIREMOCK_IMAGE,
    ServiceType,
)
from chaincontainers.container import CopyDirective, GenericContainer
from chaincontainers.started import StartedContainer
from chaincontainers.strategies import WaitStrategy


class WiremockContainer(GenericContainer):
    """
    A WireMock server, optionally preloaded with stub mappings.

    Usage:
        wiremock = WiremockContainer().with_mappings("./mocks/wiremock").start()
        requests.get(f"{wiremock.rpc_url}/hello")
    """

    def __init__(
        self,
        image: str = WIREMOCK_IMAGE,
        docker_client: docker.DockerClient | None = None,
        config: RuntimeConfig | None = None,
        name: str | None = None,
    ):
        super().__init__(image, docker_client, config, name=name, service_name=str(ServiceType.Wiremock))
        self.with_exposed_ports(WIREMOCK_HTTP_PORT)
        self.with_wait_strategy(WaitStrategy.for_listening_ports())

    def with_mappings(self, directory: str | Path):
        """Copy ``<directory>/__files`` and ``<directory>/mappings`` into the server."""
        directory = Path(directory)
        return self.with_copy_directories_to_container(
            CopyDirective(source=str(directory / "__files"), target=f"{WIREMOCK_HOME}/__files"),
            CopyDirective(source=str(directory / "mappings"), target=f"{WIREMOCK_HOME}/mappings"),
        )

    def start(self) -> "StartedWiremockContainer":
        started = super().start()
        url = f"http://{started.get_host()}:{started.get_mapped_port(WIREMOCK_HTTP_PORT)}"
        return StartedWiremockContainer.wrap(started, url)


class StartedWiremockContainer(StartedContainer):
    """A ready WireMock server with admin API helpers."""

    def __init__(self, owner, handle, container, url: str, timeout: int = 10):
        super().__init__(owner, handle, container)
        self._url = url
        self._timeout = timeout

    @property
    def rpc_url(self) -> str:
        self._ensure_running()
        return self._url

    @property
    def admin_url(self) -> str:
        self._ensure_running()
        return f"{self._url}/__admin"

    def _admin(self, method: str, path: str, **kwargs) -> requests.Response:
        self._ensure_running()
        resp = requests.request(method, f"{self.admin_url}{path}", timeout=self._timeout, **kwargs)
        resp.raise_for_status()
        return resp

    def mappings(self) -> list[dict[str, Any]]:
        return self._admin("GET", "/mappings").json()["mappings"]

    def add_mapping(self, mapping: dict[str, Any]) -> dict[str, Any]:
        """Register a stub mapping; returns it with its assigned id."""
        return self._admin("POST", "/mappings", json=mapping).json()

    def reset(self) -> None:
        """Restore file-based mappings and clear the request journal."""
        self._admin("POST", "/reset")

    def requests(self) -> list[dict[str, Any]]:
        """Requests received so far."""
        return self._admin("GET", "/requests").json()["requests"]
