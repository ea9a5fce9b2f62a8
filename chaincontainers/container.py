"""
Generic Docker container orchestration with readiness gating.

``GenericContainer`` accumulates launch configuration, freezes it into a
``LaunchSpec`` when ``start()`` begins, launches the container through the
docker SDK and only returns once the configured ``WaitStrategy`` holds.
"""

import atexit
import contextlib
import io
import logging
import os
import tarfile
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any
from urllib.parse import urlparse

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound
from docker.models.containers import Container

from chaincontainers.cmdline import CommandLine
from chaincontainers.config import RuntimeConfig, load_config
from chaincontainers.config.constants import LABEL_MANAGED, LABEL_SERVICE
from chaincontainers.errors import (
    ConfigurationError,
    LaunchFailure,
    ReadinessTimeoutError,
    WaitTimeoutError,
)
from chaincontainers.started import StartedContainer
from chaincontainers.strategies import WaitStrategy, is_ready
from chaincontainers.wait import wait_until

# Number of log lines attached to startup errors
LOG_TAIL_LINES = 50


@dataclass(frozen=True)
class CopyDirective:
    """Copy a host directory to ``target`` inside the container before it starts."""

    source: str
    target: str


@dataclass(frozen=True)
class LaunchSpec:
    """Immutable snapshot of everything needed to create the container."""

    image: str
    entrypoint: tuple[str, ...] | None
    command: tuple[str, ...]
    env: Mapping[str, str]
    exposed_ports: tuple[int, ...]
    copies: tuple[CopyDirective, ...]
    labels: Mapping[str, str]
    name: str | None


@dataclass(frozen=True)
class RunningContainer:
    """Resolved handle of a container that satisfied its wait strategy."""

    container_id: str
    name: str
    host: str
    ports: Mapping[int, int] = field(default_factory=dict)

    def url(self, port: int, scheme: str = "http") -> str:
        return f"{scheme}://{self.host}:{self.ports[port]}"


def _register_removal(container: Container) -> Callable[[], None]:
    """
    Register container for removal on interpreter exit.

    Returns the registered callback so it can be unregistered once the
    container has been removed explicitly.
    """

    def remove():
        with contextlib.suppress(Exception):
            container.remove(force=True, v=True)

    atexit.register(remove)
    return remove


def _pack_directory(source: str, target: str) -> tuple[str, bytes]:
    """
    Tar ``source`` so that extracting it into the parent of ``target`` creates ``target``.

    Raises:
        ConfigurationError: If ``source`` is not a readable directory
    """
    src = Path(source)
    if not src.is_dir() or not os.access(src, os.R_OK | os.X_OK):
        raise ConfigurationError(f"copy source '{source}' is not a readable directory")

    dest = PurePosixPath(target)
    buf = io.BytesIO()
    try:
        with tarfile.open(fileobj=buf, mode="w") as tar:
            tar.add(str(src), arcname=dest.name)
    except OSError as e:
        raise ConfigurationError(f"cannot read copy source '{source}': {e}") from e
    return str(dest.parent), buf.getvalue()


def resolve_docker_host(client: docker.DockerClient, override: str | None = None) -> str:
    """Host name under which mapped container ports are reachable."""
    if override:
        return override
    base_url = getattr(client.api, "base_url", "") or ""
    parsed = urlparse(base_url)
    if parsed.scheme in ("http", "https", "tcp") and parsed.hostname:
        return parsed.hostname
    return "localhost"


class _DockerTarget:
    """Readiness view over a created docker container."""

    def __init__(self, container: Container, host: str, exposed_ports: tuple[int, ...]):
        self._container = container
        self.host = host
        self.exposed_ports = exposed_ports

    def mapped_port(self, port: int) -> int:
        bindings = (self._container.ports or {}).get(f"{port}/tcp")
        if not bindings:
            raise LookupError(f"port {port} is not mapped yet")
        return int(bindings[0]["HostPort"])

    def logs(self) -> str:
        return self._container.logs(stdout=True, stderr=True).decode(errors="replace")

    def exec(self, cmd: list[str]) -> tuple[int, str]:
        try:
            exit_code, output = self._container.exec_run(cmd)
        except APIError as e:
            return -1, str(e)
        return exit_code, (output or b"").decode(errors="replace")


class GenericContainer:
    """
    A single-use container with builder-style configuration.

    Usage:
        container = (
            GenericContainer("wiremock/wiremock")
            .with_exposed_ports(8080)
            .with_wait_strategy(WaitStrategy.for_listening_ports())
        )
        with container.start() as started:
            port = started.get_mapped_port(8080)
    """

    def __init__(
        self,
        image: str,
        docker_client: docker.DockerClient | None = None,
        config: RuntimeConfig | None = None,
        name: str | None = None,
        service_name: str | None = None,
    ):
        self._config = config or load_config()
        self._client = docker_client
        self._image = image
        self._name = name
        self._service_name = service_name or name or image.rsplit("/", 1)[-1].split(":", 1)[0]
        self._logger = logging.getLogger(f"container.{self._service_name}")

        self._entrypoint: list[str] | None = None
        self._command = CommandLine()
        self._exposed_ports: list[int] = []
        self._env: dict[str, str] = {}
        self._copies: list[CopyDirective] = []
        self._labels: dict[str, str] = {}
        self._wait_strategy = WaitStrategy.for_listening_ports()
        self._startup_timeout = self._config.startup_timeout

        self._launch_spec: LaunchSpec | None = None
        self._container: Container | None = None
        self._handle: RunningContainer | None = None
        self._exit_hook: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _check_mutable(self):
        if self._launch_spec is not None:
            raise ConfigurationError(
                f"container '{self._service_name}' configuration is frozen once start() has begun"
            )

    def with_exposed_ports(self, *ports: int):
        self._check_mutable()
        for port in ports:
            if port not in self._exposed_ports:
                self._exposed_ports.append(int(port))
        return self

    def with_env(self, key: str, value: Any):
        self._check_mutable()
        self._env[key] = str(value)
        return self

    def with_copy_directories_to_container(self, *directives: CopyDirective):
        self._check_mutable()
        self._copies.extend(directives)
        return self

    def with_entrypoint(self, *entrypoint: str):
        self._check_mutable()
        self._entrypoint = list(entrypoint)
        return self

    def with_name(self, name: str):
        self._check_mutable()
        self._name = name
        return self

    def with_label(self, key: str, value: str):
        self._check_mutable()
        self._labels[key] = value
        return self

    def with_wait_strategy(self, strategy: WaitStrategy):
        self._check_mutable()
        self._wait_strategy = strategy
        return self

    def with_startup_timeout(self, seconds: float):
        self._check_mutable()
        if seconds <= 0:
            raise ConfigurationError(f"startup timeout must be positive, got {seconds}")
        self._startup_timeout = seconds
        return self

    def with_flag(self, flag: str):
        """Append a command flag once."""
        self._check_mutable()
        self._command.append_flag(flag)
        return self

    def with_flag_value(self, flag: str, value: Any):
        """Set a command flag to ``value``, replacing any previous value."""
        self._check_mutable()
        self._command.set_flag_value(flag, value)
        return self

    def with_command_value(self, value: Any):
        """Append a positional command token."""
        self._check_mutable()
        self._command.append_value(value)
        return self

    def configure(
        self,
        exposed_ports: Iterable[int] = (),
        copy_directives: Iterable[CopyDirective] = (),
        env: Mapping[str, Any] | None = None,
        command: Iterable[Any] = (),
    ):
        """
        Bulk configuration.

        Ports, copy directives and command tokens accumulate; environment
        variables are last-write-wins per key.
        """
        self.with_exposed_ports(*exposed_ports)
        self.with_copy_directories_to_container(*copy_directives)
        for key, value in (env or {}).items():
            self.with_env(key, value)
        for token in command:
            self.with_command_value(token)
        return self

    @property
    def command(self) -> tuple[str, ...]:
        return self._command.tokens

    @property
    def wait_strategy(self) -> WaitStrategy:
        return self._wait_strategy

    @property
    def startup_timeout(self) -> float:
        return self._startup_timeout

    @property
    def launch_spec(self) -> LaunchSpec | None:
        return self._launch_spec

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _get_client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
            except DockerException as e:
                raise LaunchFailure(f"cannot connect to docker: {e}") from e
        return self._client

    def _freeze(self) -> LaunchSpec:
        labels = {LABEL_MANAGED: "true", LABEL_SERVICE: self._service_name}
        labels.update(self._labels)
        return LaunchSpec(
            image=self._image,
            entrypoint=tuple(self._entrypoint) if self._entrypoint is not None else None,
            command=self._command.tokens,
            env=MappingProxyType(dict(self._env)),
            exposed_ports=tuple(self._exposed_ports),
            copies=tuple(self._copies),
            labels=MappingProxyType(labels),
            name=self._name,
        )

    def _ensure_image(self, client: docker.DockerClient, image: str):
        try:
            client.images.get(image)
        except ImageNotFound:
            if not self._config.pull_images:
                raise
            self._logger.info(f"Pulling image {image}")
            client.images.pull(image)

    def _create(self, client: docker.DockerClient, spec: LaunchSpec) -> Container:
        kwargs: dict[str, Any] = {
            "command": list(spec.command),
            "environment": dict(spec.env),
            "ports": {f"{port}/tcp": None for port in spec.exposed_ports},
            "labels": dict(spec.labels),
        }
        if spec.entrypoint is not None:
            kwargs["entrypoint"] = list(spec.entrypoint)
        if spec.name is not None:
            kwargs["name"] = spec.name
        return client.containers.create(spec.image, **kwargs)

    def _log_tail(self, container: Container) -> str:
        try:
            logs = container.logs(stdout=True, stderr=True, tail=LOG_TAIL_LINES)
        except DockerException as e:
            return f"<logs unavailable: {e}>"
        return logs.decode(errors="replace")

    def _check_alive(self, container: Container):
        try:
            container.reload()
        except NotFound as e:
            raise LaunchFailure(
                f"container '{self._service_name}' disappeared before becoming ready: {e}"
            ) from e
        if container.status in ("exited", "dead"):
            raise LaunchFailure(
                f"container '{self._service_name}' exited before becoming ready "
                f"(status {container.status}):\n{self._log_tail(container)}"
            )

    def _wait_until_ready(self, container: Container, target: _DockerTarget):
        strategy = self._wait_strategy

        def ready() -> bool:
            self._check_alive(container)
            return is_ready(strategy, target)

        self._logger.info(f"Waiting up to {self._startup_timeout}s for {strategy.describe()}")
        wait_until(
            ready,
            error_with=f"container '{self._service_name}' not ready",
            timeout=self._startup_timeout,
            step=self._config.poll_interval,
            fatal=(LaunchFailure,),
        )

    def _remove(self, container: Container):
        with contextlib.suppress(NotFound):
            container.remove(force=True, v=True)
        if self._exit_hook is not None:
            atexit.unregister(self._exit_hook)
            self._exit_hook = None

    def start(self) -> StartedContainer:
        """
        Launch the container and block until it is ready.

        Returns:
            The started container facade

        Raises:
            ConfigurationError: If already started or a copy source is unreadable
            LaunchFailure: If docker fails or the container exits early
            ReadinessTimeoutError: If the wait strategy does not hold in time
        """
        if self._launch_spec is not None:
            raise ConfigurationError(f"container '{self._service_name}' has already been started")

        spec = self._freeze()
        self._launch_spec = spec
        archives = [_pack_directory(c.source, c.target) for c in spec.copies]

        client = self._get_client()
        self._logger.info(f"Starting container from {spec.image}")
        self._logger.debug(f"entrypoint={spec.entrypoint} command={list(spec.command)}")

        try:
            self._ensure_image(client, spec.image)
            container = self._create(client, spec)
        except DockerException as e:
            raise LaunchFailure(f"failed to create container from {spec.image}: {e}") from e

        self._exit_hook = _register_removal(container)
        try:
            for path, data in archives:
                container.put_archive(path, data)
            container.start()

            host = resolve_docker_host(client, self._config.host_override)
            target = _DockerTarget(container, host, spec.exposed_ports)
            self._wait_until_ready(container, target)

            ports = {port: target.mapped_port(port) for port in spec.exposed_ports}
        except WaitTimeoutError as e:
            tail = self._log_tail(container)
            self._remove(container)
            self._logger.warning(f"Container not ready after {self._startup_timeout}s")
            raise ReadinessTimeoutError(
                f"container '{self._service_name}' did not satisfy "
                f"{self._wait_strategy.describe()} within {self._startup_timeout}s:\n{tail}"
            ) from e
        except DockerException as e:
            self._remove(container)
            raise LaunchFailure(f"failed to start container from {spec.image}: {e}") from e
        except BaseException:
            self._remove(container)
            raise

        self._container = container
        self._handle = RunningContainer(
            container_id=container.id,
            name=container.name,
            host=host,
            ports=MappingProxyType(ports),
        )
        self._logger.info(f"Container {container.name} ready on {host} ports={dict(ports)}")
        return StartedContainer(self, self._handle, container)

    def stop(self):
        """Remove the container. Safe to call repeatedly or before start()."""
        container = self._container
        if container is None:
            return
        self._container = None
        self._handle = None
        self._logger.info(f"Stopping container {container.name}")
        with contextlib.suppress(NotFound):
            container.stop(timeout=self._config.stop_timeout)
        self._remove(container)
