import itertools
import time

import pytest
from docker.errors import ImageNotFound, NotFound

from chaincontainers import strategies
from chaincontainers.config import RuntimeConfig

PROC_NET_TCP_HEADER = (
    "  sl  local_address rem_address   st tx_queue rx_queue tr tm->when retrnsmt   uid  timeout inode\n"
)

_ids = itertools.count(1)


def proc_net_tcp(*ports: int) -> str:
    lines = [PROC_NET_TCP_HEADER]
    for i, port in enumerate(ports):
        lines.append(
            f"   {i}: 00000000:{port:04X} 00000000:0000 0A 00000000:00000000 00:00000000 00000000     0        0 {1000 + i}\n"
        )
    return "".join(lines)


class Behaviour:
    """How fake containers react once started."""

    def __init__(self):
        self.ready_after = 0.0
        self.exit_after: float | None = None
        self.banner = "service ready"
        self.listen = True
        self.exec_exit_code = 0
        self.vanished = False


class FakeContainer:
    def __init__(self, client, image, command=None, **kwargs):
        n = next(_ids)
        self.client = client
        self.image = image
        self.command = command
        self.entrypoint = kwargs.get("entrypoint")
        self.environment = kwargs.get("environment", {})
        self.port_spec = kwargs.get("ports", {})
        self.labels = kwargs.get("labels", {})
        self.id = f"{n:064x}"
        self.name = kwargs.get("name") or f"fake_{n}"
        self.status = "created"
        self.ports = {}
        self.archives = []
        self.started_at = None
        self.stopped = False
        self.removed = False
        self.behaviour = client.behaviour

    def _elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return time.monotonic() - self.started_at

    def _ready(self) -> bool:
        return self.started_at is not None and self._elapsed() >= self.behaviour.ready_after

    def start(self):
        self.status = "running"
        self.started_at = time.monotonic()
        for i, spec in enumerate(self.port_spec):
            self.ports[spec] = [{"HostIp": "0.0.0.0", "HostPort": str(40000 + i)}]

    def reload(self):
        if self.behaviour.vanished:
            raise NotFound("no such container")
        exit_after = self.behaviour.exit_after
        if exit_after is not None and self._elapsed() >= exit_after:
            self.status = "exited"

    def logs(self, stdout=True, stderr=True, tail=None) -> bytes:
        text = "booting\n"
        if self._ready():
            text += self.behaviour.banner + "\n"
        return text.encode()

    def exec_run(self, cmd):
        ports = [int(p.split("/")[0]) for p in self.port_spec]
        if self.behaviour.exec_exit_code != 0:
            return self.behaviour.exec_exit_code, b"exec failed: no such file"
        if self._ready() and self.behaviour.listen:
            return 0, proc_net_tcp(*ports).encode()
        return 0, PROC_NET_TCP_HEADER.encode()

    def put_archive(self, path, data):
        self.archives.append((path, data))
        return True

    def stop(self, timeout=None):
        if self.removed:
            raise NotFound("no such container")
        self.stopped = True
        self.status = "exited"

    def remove(self, force=False, v=False):
        if self.removed:
            raise NotFound("no such container")
        self.removed = True
        self.client.inventory.remove(self)


class FakeContainers:
    def __init__(self, client):
        self.client = client

    def create(self, image, command=None, **kwargs):
        container = FakeContainer(self.client, image, command, **kwargs)
        self.client.inventory.append(container)
        self.client.created.append(container)
        return container

    def list(self, all=False, filters=None):
        return list(self.client.inventory)


class FakeImages:
    def __init__(self):
        self.available: set[str] = set()
        self.pulled: list[str] = []

    def get(self, image):
        if image not in self.available:
            raise ImageNotFound(f"no such image: {image}")
        return image

    def pull(self, repository, tag=None):
        self.pulled.append(repository)
        self.available.add(repository)
        return repository


class FakeApi:
    base_url = "http+docker://localhost"


class FakeDockerClient:
    def __init__(self):
        self.behaviour = Behaviour()
        self.inventory: list[FakeContainer] = []
        self.created: list[FakeContainer] = []
        self.containers = FakeContainers(self)
        self.images = FakeImages()
        self.api = FakeApi()


@pytest.fixture
def docker_client():
    return FakeDockerClient()


@pytest.fixture
def config():
    return RuntimeConfig(startup_timeout=2, poll_interval=0.02)


@pytest.fixture(autouse=True)
def host_ports_open(monkeypatch):
    monkeypatch.setattr(strategies, "host_port_open", lambda host, port, timeout=1.0: True)
