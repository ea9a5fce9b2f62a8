"""
Deploy the WrappedEther contract, deposit ether, check the wrapped balance
and the emitted events, then withdraw it again.
"""

import logging

import flexitest

from chaincontainers import receipt_status
from chaincontainers.config import ServiceType
from chaincontainers.config.constants import WEI_PER_ETHER
from common.base_test import BaseTest

logger = logging.getLogger(__name__)


@flexitest.register
class TestWrappedEtherDeposit(BaseTest):
    def __init__(self, ctx: flexitest.InitContext):
        ctx.set_env("anvil")

    def main(self, ctx):
        anvil = self.get_service(ServiceType.Anvil)
        account, other = anvil.addresses()[:2]

        abi = anvil.contract_abi("WrappedEther/WrappedEther.json")
        bytecode = anvil.contract_bytecode("WrappedEther/WrappedEther.bin")

        deployed = anvil.deploy_contract(abi, bytecode, account)
        assert receipt_status(deployed) == "success", f"Deployment failed: {deployed}"
        address = deployed["contractAddress"]
        assert address, f"no contract address in {deployed}"
        logger.info(f"WrappedEther deployed at {address}")

        receipt = anvil.invoke_contract(address, abi, "deposit", account=account, value=WEI_PER_ETHER)
        assert receipt_status(receipt) == "success", f"Deposit failed: {receipt}"

        events = anvil.decode_events(abi, receipt, "Deposit")
        assert len(events) == 1, f"expected one Deposit event, got {events}"
        args = events[0]["args"]
        assert args["dst"].lower() == account.lower()
        assert args["wad"] == WEI_PER_ETHER

        assert anvil.read_contract(address, abi, "balanceOf", account) == WEI_PER_ETHER
        assert anvil.read_contract(address, abi, "balanceOf", other) == 0
        assert anvil.read_contract(address, abi, "totalSupply") == WEI_PER_ETHER

        half = WEI_PER_ETHER // 2
        receipt = anvil.invoke_contract(address, abi, "withdraw", half, account=account)
        assert receipt_status(receipt) == "success", f"Withdrawal failed: {receipt}"
        [withdrawal] = anvil.decode_events(abi, receipt, "Withdrawal")
        assert withdrawal["args"]["wad"] == half
        assert anvil.read_contract(address, abi, "balanceOf", account) == half
        return True
