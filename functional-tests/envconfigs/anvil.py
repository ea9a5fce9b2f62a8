"""Anvil environment."""

from typing import cast

import flexitest

from chaincontainers import AnvilContainer, LogVerbosity
from chaincontainers.config import ServiceType
from factories.anvil import AnvilFactory


class AnvilEnvConfig(flexitest.EnvConfig):
    """
    A single anvil node with a random mnemonic and auto impersonation.
    """

    def __init__(self, verbosity: LogVerbosity | None = None, json_logs: bool = False):
        self.verbosity = verbosity
        self.json_logs = json_logs

    def _configure(self, anvil: AnvilContainer) -> AnvilContainer:
        if self.verbosity is not None:
            anvil.verbose_logs(self.verbosity)
        if self.json_logs:
            anvil.json_log_format()
        return anvil.with_random_mnemonic().auto_impersonate()

    def init(self, ectx: flexitest.EnvContext) -> flexitest.LiveEnv:
        anvil_factory = cast(AnvilFactory, ectx.get_factory(ServiceType.Anvil))
        anvil = anvil_factory.create_anvil(self._configure)
        return flexitest.LiveEnv({ServiceType.Anvil: anvil})
