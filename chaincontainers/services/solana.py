"""
solana-test-validator container and its started facade.
"""

import secrets

import base58
import docker

from chaincontainers.config import RuntimeConfig
from chaincontainers.config.constants import (
    SOLANA_FAUCET_PORT,
    SOLANA_PUBSUB_PORT,
    SOLANA_RPC_PORT,
    SOLANA_VALIDATOR_IMAGE,
    ServiceType,
)
from chaincontainers.container import GenericContainer
from chaincontainers.errors import ContainerStoppedError
from chaincontainers.rpc import JsonRpcClient, rpc_responds
from chaincontainers.started import StartedContainer
from chaincontainers.strategies import WaitStrategy
from chaincontainers.wait import wait_until_with_value

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


def random_pubkey() -> str:
    """A random 32-byte address, base58 encoded."""
    return base58.b58encode(secrets.token_bytes(32)).decode()


def _validator_healthy(url: str) -> bool:
    return rpc_responds(url, "getHealth", expected="ok")


class SolanaValidatorContainer(GenericContainer):
    """
    Container running ``solana-test-validator``.

    Usage:
        validator = SolanaValidatorContainer().with_reset().start()
        validator.airdrop(random_pubkey(), 10**9)
    """

    def __init__(
        self,
        image: str = SOLANA_VALIDATOR_IMAGE,
        docker_client: docker.DockerClient | None = None,
        config: RuntimeConfig | None = None,
        name: str | None = None,
    ):
        super().__init__(
            image, docker_client, config, name=name, service_name=str(ServiceType.SolanaValidator)
        )
        self.with_entrypoint("solana-test-validator")
        self.with_flag_value("--bind-address", "0.0.0.0")
        self.with_flag_value("--rpc-port", SOLANA_RPC_PORT)
        self.with_flag_value("--faucet-port", SOLANA_FAUCET_PORT)
        self.with_flag_value("--ledger", "/tmp/test-ledger")
        self.with_exposed_ports(SOLANA_RPC_PORT, SOLANA_PUBSUB_PORT, SOLANA_FAUCET_PORT)
        self.with_wait_strategy(
            WaitStrategy.all_of(
                WaitStrategy.for_listening_port(SOLANA_RPC_PORT),
                WaitStrategy.for_http_probe(SOLANA_RPC_PORT, _validator_healthy),
            )
        )

    def with_reset(self):
        """Start from a fresh ledger."""
        return self.with_flag("--reset")

    def with_log(self):
        """Log to stderr instead of the ledger directory."""
        return self.with_flag("--log")

    def quiet(self):
        return self.with_flag("--quiet")

    def with_slots_per_epoch(self, slots: int):
        return self.with_flag_value("--slots-per-epoch", slots)

    def with_ticks_per_slot(self, ticks: int):
        return self.with_flag_value("--ticks-per-slot", ticks)

    def with_limit_ledger_size(self, shreds: int):
        return self.with_flag_value("--limit-ledger-size", shreds)

    def with_url(self, url: str):
        """Cluster to clone accounts from."""
        return self.with_flag_value("--url", url)

    def with_clone(self, address: str):
        """Clone an account from the ``--url`` cluster. May be repeated."""
        return self.with_command_value("--clone").with_command_value(address)

    def start(self) -> "StartedSolanaValidatorContainer":
        started = super().start()
        rpc_url = f"http://{started.get_host()}:{started.get_mapped_port(SOLANA_RPC_PORT)}"
        return StartedSolanaValidatorContainer.wrap(started, rpc_url)


class StartedSolanaValidatorContainer(StartedContainer):
    """A ready validator with JSON-RPC helpers."""

    def __init__(self, owner, handle, container, rpc_url: str):
        super().__init__(owner, handle, container)
        self._rpc_url = rpc_url

    @property
    def rpc_url(self) -> str:
        self._ensure_running()
        return self._rpc_url

    @property
    def ws_url(self) -> str:
        return f"ws://{self.get_host()}:{self.get_mapped_port(SOLANA_PUBSUB_PORT)}"

    @property
    def faucet_port(self) -> int:
        return self.get_mapped_port(SOLANA_FAUCET_PORT)

    def create_rpc(self) -> JsonRpcClient:
        self._ensure_running()
        name = self.get_name()
        rpc = JsonRpcClient(self._rpc_url, name=name)

        def _status_check(method: str):
            if not self.is_running:
                self._logger.warning(f"container '{name}' stopped before call to {method}")
                raise ContainerStoppedError(f"container '{name}' is not running")

        rpc.set_pre_call_hook(_status_check)
        return rpc

    def get_health(self) -> str:
        return self.create_rpc().getHealth()

    def get_version(self) -> dict:
        return self.create_rpc().getVersion()

    def get_slot(self, commitment: str = "confirmed") -> int:
        return self.create_rpc().getSlot({"commitment": commitment})

    def get_balance(self, pubkey: str, commitment: str = "confirmed") -> int:
        """Balance in lamports."""
        return self.create_rpc().call_value("getBalance", pubkey, {"commitment": commitment})

    def request_airdrop(self, pubkey: str, lamports: int) -> str:
        """Request lamports from the faucet; returns the transaction signature."""
        return self.create_rpc().requestAirdrop(pubkey, lamports)

    def confirm_transaction(
        self, signature: str, commitment: str = "confirmed", timeout: float = 30
    ) -> dict:
        """
        Wait until ``signature`` reaches ``commitment``.

        Returns:
            The signature status

        Raises:
            WaitTimeoutError: If the commitment is not reached in time
            RuntimeError: If the transaction failed
        """
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"unknown commitment '{commitment}'")
        wanted = COMMITMENT_LEVELS.index(commitment)
        rpc = self.create_rpc()

        def fetch():
            return rpc.call_value("getSignatureStatuses", [signature])[0]

        def reached(status) -> bool:
            if status is None:
                return False
            if status.get("err") is not None:
                return True
            level = status.get("confirmationStatus") or "processed"
            return COMMITMENT_LEVELS.index(level) >= wanted

        status = wait_until_with_value(
            fetch,
            reached,
            error_with=f"Transaction {signature} not {commitment}",
            timeout=timeout,
        )
        if status.get("err") is not None:
            raise RuntimeError(f"transaction {signature} failed: {status['err']}")
        return status

    def airdrop(self, pubkey: str, lamports: int, commitment: str = "confirmed") -> str:
        """Request an airdrop and wait for it to reach ``commitment``."""
        signature = self.request_airdrop(pubkey, lamports)
        self.confirm_transaction(signature, commitment)
        return signature
