"""
Readiness criteria for started containers.

A ``WaitStrategy`` is a tagged value: its ``kind`` selects the check that
``is_ready`` runs against a ``ReadinessTarget``. Strategies hold no state and
are re-evaluated on every poll.
"""

import logging
import re
import socket
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# /proc/net/tcp socket state for LISTEN
_TCP_LISTEN = "0A"


class WaitKind(str, Enum):
    ListeningPort = "listening_port"
    ListeningPorts = "listening_ports"
    LogMessage = "log_message"
    HttpProbe = "http_probe"
    AllOf = "all_of"

    def __str__(self) -> str:
        return self.value


class ReadinessTarget(Protocol):
    """What a wait strategy can observe about a starting container."""

    host: str
    exposed_ports: tuple[int, ...]

    def mapped_port(self, port: int) -> int: ...

    def logs(self) -> str: ...

    def exec(self, cmd: list[str]) -> tuple[int, str]: ...


@dataclass(frozen=True)
class WaitStrategy:
    """
    Declarative readiness criterion.

    Build instances through the ``for_*`` / ``all_of`` constructors rather
    than directly.

    Usage:
        WaitStrategy.for_listening_port(8545)
        WaitStrategy.for_log_message(r"Listening on .*:8545")
        WaitStrategy.all_of(
            WaitStrategy.for_listening_port(8899),
            WaitStrategy.for_http_probe(8899, lambda url: ping(url)),
        )
    """

    kind: WaitKind
    port: int | None = None
    pattern: re.Pattern | None = None
    times: int = 1
    probe: Callable[[str], Any] | None = field(default=None, compare=False)
    children: tuple["WaitStrategy", ...] = ()

    @classmethod
    def for_listening_port(cls, port: int) -> "WaitStrategy":
        return cls(WaitKind.ListeningPort, port=port)

    @classmethod
    def for_listening_ports(cls) -> "WaitStrategy":
        """Every exposed port must be listening."""
        return cls(WaitKind.ListeningPorts)

    @classmethod
    def for_log_message(cls, pattern: str | re.Pattern, times: int = 1) -> "WaitStrategy":
        if times < 1:
            raise ValueError(f"times must be at least 1, got {times}")
        if isinstance(pattern, str):
            pattern = re.compile(pattern, re.MULTILINE)
        return cls(WaitKind.LogMessage, pattern=pattern, times=times)

    @classmethod
    def for_http_probe(cls, port: int, probe: Callable[[str], Any]) -> "WaitStrategy":
        """``probe`` receives ``http://<host>:<mapped port>`` and returns truthy once ready."""
        return cls(WaitKind.HttpProbe, port=port, probe=probe)

    @classmethod
    def all_of(cls, *strategies: "WaitStrategy") -> "WaitStrategy":
        if not strategies:
            raise ValueError("all_of requires at least one strategy")
        return cls(WaitKind.AllOf, children=tuple(strategies))

    def describe(self) -> str:
        if self.kind == WaitKind.AllOf:
            return "all of (" + ", ".join(c.describe() for c in self.children) + ")"
        if self.kind == WaitKind.LogMessage:
            assert self.pattern is not None
            return f"log message /{self.pattern.pattern}/ x{self.times}"
        if self.kind == WaitKind.ListeningPorts:
            return "all exposed ports listening"
        return f"{self.kind} on port {self.port}"


def host_port_open(host: str, port: int, timeout: float = 1.0) -> bool:
    """True if a TCP connection to ``host:port`` succeeds."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def parse_listening_ports(proc_net_tcp: str) -> set[int]:
    """Ports in LISTEN state from the contents of ``/proc/net/tcp`` / ``tcp6``."""
    ports = set()
    for line in proc_net_tcp.splitlines():
        parts = line.split()
        # sl local_address rem_address st ...
        if len(parts) < 4 or ":" not in parts[1]:
            continue
        if parts[3].upper() != _TCP_LISTEN:
            continue
        try:
            ports.add(int(parts[1].rsplit(":", 1)[1], 16))
        except ValueError:
            continue
    return ports


def _listening_inside(target: ReadinessTarget, port: int) -> bool:
    exit_code, output = target.exec(["cat", "/proc/net/tcp", "/proc/net/tcp6"])
    if "local_address" in output:
        return port in parse_listening_ports(output)
    # Image cannot run the probe; rely on the host side check alone.
    logger.debug(f"in-container port probe unavailable (exit {exit_code}): {output.strip()}")
    return True


def _check_port(target: ReadinessTarget, port: int) -> bool:
    return _listening_inside(target, port) and host_port_open(target.host, target.mapped_port(port))


def _check_listening_port(strategy: WaitStrategy, target: ReadinessTarget) -> bool:
    assert strategy.port is not None
    return _check_port(target, strategy.port)


def _check_listening_ports(strategy: WaitStrategy, target: ReadinessTarget) -> bool:
    return all(_check_port(target, port) for port in target.exposed_ports)


def _check_log_message(strategy: WaitStrategy, target: ReadinessTarget) -> bool:
    assert strategy.pattern is not None
    count = 0
    for _ in strategy.pattern.finditer(target.logs()):
        count += 1
        if count >= strategy.times:
            return True
    return False


def _check_http_probe(strategy: WaitStrategy, target: ReadinessTarget) -> bool:
    assert strategy.port is not None and strategy.probe is not None
    url = f"http://{target.host}:{target.mapped_port(strategy.port)}"
    return bool(strategy.probe(url))


def _check_all_of(strategy: WaitStrategy, target: ReadinessTarget) -> bool:
    return all(is_ready(child, target) for child in strategy.children)


_CHECKS: dict[WaitKind, Callable[[WaitStrategy, ReadinessTarget], bool]] = {
    WaitKind.ListeningPort: _check_listening_port,
    WaitKind.ListeningPorts: _check_listening_ports,
    WaitKind.LogMessage: _check_log_message,
    WaitKind.HttpProbe: _check_http_probe,
    WaitKind.AllOf: _check_all_of,
}


def is_ready(strategy: WaitStrategy, target: ReadinessTarget) -> bool:
    """Evaluate ``strategy`` once against the current state of ``target``."""
    return _CHECKS[strategy.kind](strategy, target)
