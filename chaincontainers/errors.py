"""
Exception hierarchy for container orchestration.
"""


class ChainContainersError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ChainContainersError):
    """Invalid or conflicting container configuration."""


class LaunchFailure(ChainContainersError):
    """The container runtime failed to create or start the container."""


class WaitTimeoutError(ChainContainersError, TimeoutError):
    """A polled condition did not hold before its deadline."""


class ReadinessTimeoutError(WaitTimeoutError):
    """
    The container never satisfied its wait strategy.

    The container has already been removed when this is raised.
    """


class ContainerStoppedError(ChainContainersError, RuntimeError):
    """A started container was used after it was stopped."""
