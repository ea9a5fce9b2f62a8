"""
EVM RPC capability used by the anvil facade.

``EvmRpc`` is the narrow set of node operations the facade composes.
``Web3EvmClient`` implements it on top of web3.py; tests substitute fakes.
"""

import logging
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Protocol

from web3 import Web3
from web3.logs import DISCARD
from web3.types import RPCEndpoint

from chaincontainers.config.constants import WEI_PER_ETHER

Abi = Sequence[Mapping[str, Any]]
TxReceipt = Mapping[str, Any]

TX_STATUS_SUCCESS = 1

logger = logging.getLogger(__name__)


class EvmRpc(Protocol):
    """Operations the anvil facade needs from an EVM node client."""

    def get_addresses(self) -> list[str]: ...

    def get_block_number(self) -> int: ...

    def send_transaction(self, tx: dict[str, Any]) -> bytes: ...

    def mine(self, blocks: int = 1) -> None: ...

    def wait_for_transaction_receipt(self, tx_hash: bytes, timeout: float = 120) -> TxReceipt: ...

    def deploy_contract(
        self, abi: Abi, bytecode: str, account: str, args: Sequence[Any] = ()
    ) -> bytes: ...

    def write_contract(
        self,
        address: str,
        abi: Abi,
        function_name: str,
        args: Sequence[Any] = (),
        value: int = 0,
        account: str | None = None,
    ) -> bytes: ...

    def read_contract(
        self, address: str, abi: Abi, function_name: str, args: Sequence[Any] = ()
    ) -> Any: ...

    def decode_events(self, abi: Abi, receipt: TxReceipt, event_name: str) -> list[Any]: ...

    def request(self, method: str, params: Sequence[Any] = ()) -> Any: ...


def parse_ether(amount: str | int | Decimal) -> int:
    """Convert an ether amount ("1", "0.5", Decimal, int) to wei."""
    wei = Decimal(str(amount)) * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"amount {amount} has more precision than one wei")
    return int(wei)


def receipt_status(receipt: TxReceipt) -> str:
    """Render a receipt status as ``"success"`` or ``"reverted"``."""
    return "success" if int(receipt["status"]) == TX_STATUS_SUCCESS else "reverted"


class Web3EvmClient:
    """
    ``EvmRpc`` backed by a web3.py HTTP provider.

    Usage:
        client = Web3EvmClient.from_url("http://localhost:8545")
        tx_hash = client.send_transaction({"from": a, "to": b, "value": 1})
        client.mine()
        receipt = client.wait_for_transaction_receipt(tx_hash)
    """

    def __init__(self, w3: Web3, receipt_poll_latency: float = 0.1):
        self.w3 = w3
        self.receipt_poll_latency = receipt_poll_latency

    @classmethod
    def from_url(cls, url: str, request_timeout: int = 30) -> "Web3EvmClient":
        provider = Web3.HTTPProvider(url, request_kwargs={"timeout": request_timeout})
        return cls(Web3(provider))

    def request(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Raw JSON-RPC request; errors raise like any other web3 call."""
        logger.debug(f"RPC call: {method}({list(params)})")
        return self.w3.manager.request_blocking(RPCEndpoint(method), list(params))

    def get_addresses(self) -> list[str]:
        return list(self.w3.eth.accounts)

    def get_block_number(self) -> int:
        return self.w3.eth.block_number

    def send_transaction(self, tx: dict[str, Any]) -> bytes:
        return self.w3.eth.send_transaction(tx)

    def mine(self, blocks: int = 1) -> None:
        self.request("anvil_mine", [hex(blocks)])

    def wait_for_transaction_receipt(self, tx_hash: bytes, timeout: float = 120) -> TxReceipt:
        return self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout, poll_latency=self.receipt_poll_latency
        )

    def deploy_contract(
        self, abi: Abi, bytecode: str, account: str, args: Sequence[Any] = ()
    ) -> bytes:
        contract = self.w3.eth.contract(abi=abi, bytecode=bytecode)
        return contract.constructor(*args).transact({"from": account})

    def write_contract(
        self,
        address: str,
        abi: Abi,
        function_name: str,
        args: Sequence[Any] = (),
        value: int = 0,
        account: str | None = None,
    ) -> bytes:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        fn = contract.get_function_by_name(function_name)(*args)
        tx: dict[str, Any] = {"value": value}
        if account is not None:
            tx["from"] = account
        return fn.transact(tx)

    def read_contract(
        self, address: str, abi: Abi, function_name: str, args: Sequence[Any] = ()
    ) -> Any:
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return contract.get_function_by_name(function_name)(*args).call()

    def decode_events(self, abi: Abi, receipt: TxReceipt, event_name: str) -> list[Any]:
        contract = self.w3.eth.contract(abi=abi)
        event = getattr(contract.events, event_name)
        return list(event().process_receipt(receipt, errors=DISCARD))
