"""
Anvil (Foundry EVM node emulator) container and its started facade.
"""

from collections.abc import Callable
from decimal import Decimal
from pathlib import Path
from typing import Any

import docker
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from chaincontainers.artifacts import load_abi, load_bytecode
from chaincontainers.config import RuntimeConfig
from chaincontainers.config.constants import (
    ANVIL_IMAGE,
    ANVIL_RPC_PORT,
    WEI_PER_ETHER,
    LogVerbosity,
    ServiceType,
)
from chaincontainers.container import GenericContainer
from chaincontainers.errors import ConfigurationError
from chaincontainers.evm import Abi, EvmRpc, TxReceipt, Web3EvmClient, parse_ether
from chaincontainers.rpc import rpc_responds
from chaincontainers.started import StartedContainer
from chaincontainers.strategies import WaitStrategy

# Gas limit used for plain value transfers signed locally
TRANSFER_GAS = 21000

DEFAULT_NEW_ACCOUNT_BALANCE = 100 * WEI_PER_ETHER


def _to_int(value: Any) -> int:
    """RPC quantities arrive as hex strings or ints depending on the web3 version."""
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


def _hex(value: bytes | str) -> str:
    return value if isinstance(value, str) else Web3.to_hex(value)


def _anvil_rpc_ready(url: str) -> bool:
    return rpc_responds(url, "eth_chainId")


class AnvilContainer(GenericContainer):
    """
    Container running ``anvil`` with builder-style flag configuration.

    Usage:
        anvil = (
            AnvilContainer()
            .verbose_logs(LogVerbosity.Five)
            .json_log_format()
            .with_random_mnemonic()
            .auto_impersonate()
            .start()
        )
        addresses = anvil.addresses()
        receipt = anvil.send_eth_transaction(addresses[0], addresses[1], "1")
        anvil.stop()
    """

    def __init__(
        self,
        image: str = ANVIL_IMAGE,
        docker_client: docker.DockerClient | None = None,
        config: RuntimeConfig | None = None,
        name: str | None = None,
    ):
        super().__init__(image, docker_client, config, name=name, service_name=str(ServiceType.Anvil))
        self._rpc_factory: Callable[[str], EvmRpc] = Web3EvmClient.from_url
        self._contracts_dir = Path.cwd()

        self.with_entrypoint("anvil")
        self.with_flag_value("--host", "0.0.0.0")
        self.with_flag_value("--port", ANVIL_RPC_PORT)
        self.with_exposed_ports(ANVIL_RPC_PORT)
        self.with_wait_strategy(
            WaitStrategy.all_of(
                WaitStrategy.for_listening_port(ANVIL_RPC_PORT),
                WaitStrategy.for_http_probe(ANVIL_RPC_PORT, _anvil_rpc_ready),
            )
        )

    def verbose_logs(self, level: LogVerbosity = LogVerbosity.One):
        """
        Set the log verbosity (``-v`` .. ``-vvvvv``).

        Only one level may be configured; repeating the same level is a no-op.

        Raises:
            ConfigurationError: If a different level was already set
        """
        level = LogVerbosity(level)
        for existing in LogVerbosity:
            if existing.value in self.command and existing != level:
                raise ConfigurationError(
                    f"verbosity already set to {existing.value}, cannot also set {level.value}"
                )
        return self.with_flag(level.value)

    def json_log_format(self):
        return self.with_flag("--json")

    def with_random_mnemonic(self):
        return self.with_flag("--mnemonic-random")

    def with_mnemonic(self, mnemonic: str):
        return self.with_flag_value("--mnemonic", mnemonic)

    def auto_impersonate(self):
        return self.with_flag("--auto-impersonate")

    def with_accounts(self, count: int):
        return self.with_flag_value("--accounts", count)

    def with_balance(self, ether: int):
        """Initial balance of each dev account, in ether."""
        return self.with_flag_value("--balance", ether)

    def with_chain_id(self, chain_id: int):
        return self.with_flag_value("--chain-id", chain_id)

    def with_block_time(self, seconds: int):
        """Mine blocks on an interval instead of per transaction."""
        return self.with_flag_value("--block-time", seconds)

    def no_mining(self):
        """Disable automatic mining; blocks are produced only by ``mine()``."""
        return self.with_flag("--no-mining")

    def with_fork_url(self, url: str):
        return self.with_flag_value("--fork-url", url)

    def with_fork_block_number(self, block_number: int):
        return self.with_flag_value("--fork-block-number", block_number)

    def with_gas_limit(self, gas_limit: int):
        return self.with_flag_value("--gas-limit", gas_limit)

    def with_gas_price(self, gas_price: int):
        return self.with_flag_value("--gas-price", gas_price)

    def with_base_fee(self, base_fee: int):
        return self.with_flag_value("--base-fee", base_fee)

    def with_hardfork(self, hardfork: str):
        return self.with_flag_value("--hardfork", hardfork)

    def steps_tracing(self):
        return self.with_flag("--steps-tracing")

    def with_contracts_dir(self, path: str | Path):
        """Directory that ``contract_abi`` / ``contract_bytecode`` paths are relative to."""
        self._check_mutable()
        self._contracts_dir = Path(path)
        return self

    def with_rpc_factory(self, factory: Callable[[str], EvmRpc]):
        """Replace the client built from the RPC URL once the node is ready."""
        self._check_mutable()
        self._rpc_factory = factory
        return self

    def start(self) -> "StartedAnvilContainer":
        started = super().start()
        rpc_url = f"http://{started.get_host()}:{started.get_mapped_port(ANVIL_RPC_PORT)}"
        try:
            client = self._rpc_factory(rpc_url)
        except BaseException:
            self.stop()
            raise
        return StartedAnvilContainer.wrap(started, rpc_url, client, self._contracts_dir)


class StartedAnvilContainer(StartedContainer):
    """
    A ready anvil node with helpers that submit, mine and await receipts.

    Every transaction helper triggers exactly one block after submission, so
    the receipt is available whether or not the node auto-mines. RPC errors
    propagate unchanged; a reverted transaction is reported through the
    receipt status.
    """

    def __init__(self, owner, handle, container, rpc_url: str, client: EvmRpc, contracts_dir: Path):
        super().__init__(owner, handle, container)
        self._rpc_url = rpc_url
        self._client = client
        self._contracts_dir = contracts_dir

    @property
    def rpc_url(self) -> str:
        self._ensure_running()
        return self._rpc_url

    @property
    def client(self) -> EvmRpc:
        self._ensure_running()
        return self._client

    @property
    def web3(self) -> Web3:
        """The underlying Web3 instance when the default client is in use."""
        client = self.client
        if not isinstance(client, Web3EvmClient):
            raise TypeError(f"client {type(client).__name__} does not wrap a Web3 instance")
        return client.w3

    def _confirm(self, tx_hash: bytes | str) -> TxReceipt:
        self._client.mine(1)
        receipt = self._client.wait_for_transaction_receipt(tx_hash)
        self._logger.debug(f"tx {_hex(tx_hash)} mined in block {receipt['blockNumber']}")
        return receipt

    def addresses(self) -> list[str]:
        """Accounts unlocked on the node."""
        return self.client.get_addresses()

    def block_number(self) -> int:
        return self.client.get_block_number()

    def mine(self, blocks: int = 1) -> None:
        self.client.mine(blocks)

    def send_eth_transaction(self, from_: str, to: str, amount: str | int | Decimal) -> TxReceipt:
        """
        Transfer ``amount`` ether from an unlocked account and wait for the receipt.
        """
        tx_hash = self.client.send_transaction({"from": from_, "to": to, "value": parse_ether(amount)})
        return self._confirm(tx_hash)

    def deploy_contract(self, abi: Abi, bytecode: str, account: str, *args: Any) -> TxReceipt:
        """Deploy a contract; the receipt carries ``contractAddress`` on success."""
        tx_hash = self.client.deploy_contract(abi, bytecode, account, args)
        return self._confirm(tx_hash)

    def invoke_contract(
        self,
        address: str,
        abi: Abi,
        function_name: str,
        *args: Any,
        account: str,
        value: int = 0,
    ) -> TxReceipt:
        """Call a state-changing contract function; ``value`` is in wei."""
        tx_hash = self.client.write_contract(address, abi, function_name, args, value, account)
        return self._confirm(tx_hash)

    def read_contract(self, address: str, abi: Abi, function_name: str, *args: Any) -> Any:
        """Call a view function without sending a transaction."""
        return self.client.read_contract(address, abi, function_name, args)

    def decode_events(self, abi: Abi, receipt: TxReceipt, event_name: str) -> list[Any]:
        return self.client.decode_events(abi, receipt, event_name)

    def set_balance(self, address: str, wei: int) -> None:
        self.client.request("anvil_setBalance", [address, hex(wei)])

    def new_account(self, balance_wei: int = DEFAULT_NEW_ACCOUNT_BALANCE) -> LocalAccount:
        """Create a fresh local account funded with ``balance_wei``."""
        account = Account.create()
        self.set_balance(account.address, balance_wei)
        return account

    def send_signed_transaction(
        self,
        account: LocalAccount,
        to: str | None,
        value: int = 0,
        data: bytes = b"",
        gas: int | None = None,
    ) -> TxReceipt:
        """
        Sign a legacy transaction locally with ``account`` and submit it raw.

        Nonce, gas price and chain id are read from the node.
        """
        client = self.client
        nonce = _to_int(client.request("eth_getTransactionCount", [account.address, "pending"]))
        gas_price = _to_int(client.request("eth_gasPrice"))
        chain_id = _to_int(client.request("eth_chainId"))
        if gas is None:
            if data or to is None:
                call = {"from": account.address, "value": hex(value), "data": Web3.to_hex(data)}
                if to is not None:
                    call["to"] = to
                gas = _to_int(client.request("eth_estimateGas", [call]))
            else:
                gas = TRANSFER_GAS

        tx = {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": gas,
            "value": value,
            "data": data,
            "chainId": chain_id,
        }
        if to is not None:
            tx["to"] = to
        signed = account.sign_transaction(tx)
        tx_hash = client.request("eth_sendRawTransaction", [Web3.to_hex(signed.raw_transaction)])
        return self._confirm(tx_hash)

    def snapshot(self) -> str:
        """Snapshot chain state; returns an id for ``revert``."""
        return self.client.request("evm_snapshot")

    def revert(self, snapshot_id: str) -> bool:
        return bool(self.client.request("evm_revert", [snapshot_id]))

    def contract_abi(self, path: str | Path) -> list[dict[str, Any]]:
        return load_abi(self._contracts_dir / path)

    def contract_bytecode(self, path: str | Path) -> str:
        return load_bytecode(self._contracts_dir / path)

