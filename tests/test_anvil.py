import json

import pytest

from chaincontainers.config.constants import ANVIL_IMAGE, WEI_PER_ETHER, LogVerbosity
from chaincontainers.errors import ConfigurationError, ContainerStoppedError
from chaincontainers.evm import receipt_status
from chaincontainers.services.anvil import AnvilContainer
from chaincontainers.strategies import WaitKind, WaitStrategy

ADDRESSES = [
    "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
]
CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
DEPLOY_HASH = b"\x02" * 32


class FakeEvmRpc:
    """Records calls and serves canned receipts."""

    def __init__(self, url):
        self.url = url
        self.calls = []
        self.status = 1

    def _receipt(self, tx_hash, **extra):
        receipt = {"transactionHash": tx_hash, "blockNumber": 1, "status": self.status}
        receipt.update(extra)
        return receipt

    def get_addresses(self):
        return list(ADDRESSES)

    def get_block_number(self):
        return 1

    def send_transaction(self, tx):
        self.calls.append(("send_transaction", tx))
        return b"\x01" * 32

    def mine(self, blocks=1):
        self.calls.append(("mine", blocks))

    def wait_for_transaction_receipt(self, tx_hash, timeout=120):
        self.calls.append(("wait_for_transaction_receipt", tx_hash))
        if tx_hash == DEPLOY_HASH:
            return self._receipt(tx_hash, to=None, contractAddress=CONTRACT_ADDRESS)
        return self._receipt(
            tx_hash, **{"from": ADDRESSES[0].lower(), "to": ADDRESSES[1].lower()}
        )

    def deploy_contract(self, abi, bytecode, account, args=()):
        self.calls.append(("deploy_contract", bytecode, account, tuple(args)))
        return DEPLOY_HASH

    def write_contract(self, address, abi, function_name, args=(), value=0, account=None):
        self.calls.append(("write_contract", address, function_name, tuple(args), value, account))
        return b"\x03" * 32

    def read_contract(self, address, abi, function_name, args=()):
        self.calls.append(("read_contract", address, function_name, tuple(args)))
        return 10**18

    def decode_events(self, abi, receipt, event_name):
        return [{"event": event_name, "args": {}}]

    def request(self, method, params=()):
        self.calls.append(("request", method, list(params)))
        return "0x1"


@pytest.fixture
def anvil(docker_client, config):
    docker_client.images.available.add(ANVIL_IMAGE)
    return (
        AnvilContainer(docker_client=docker_client, config=config)
        .with_rpc_factory(FakeEvmRpc)
        .with_wait_strategy(WaitStrategy.for_log_message("service ready"))
    )


def names(client):
    return [call[0] for call in client.calls]


def test_default_command(anvil):
    assert anvil.command == ("--host", "0.0.0.0", "--port", "8545")
    assert anvil.launch_spec is None


def test_default_wait_strategy_probes_rpc(config, docker_client):
    strategy = AnvilContainer(docker_client=docker_client, config=config).wait_strategy
    assert strategy.kind == WaitKind.AllOf
    assert [c.kind for c in strategy.children] == [WaitKind.ListeningPort, WaitKind.HttpProbe]


def test_builder_flags(anvil):
    anvil.verbose_logs(LogVerbosity.Five).json_log_format().with_random_mnemonic().auto_impersonate()
    anvil.with_chain_id(1).with_chain_id(31337).json_log_format()

    cmd = anvil.command
    assert cmd[:4] == ("--host", "0.0.0.0", "--port", "8545")
    assert cmd[4:] == (
        "-vvvvv",
        "--json",
        "--mnemonic-random",
        "--auto-impersonate",
        "--chain-id",
        "31337",
    )


def test_value_flags(anvil):
    anvil.with_accounts(3).with_balance(1000).with_block_time(2).with_fork_url("http://fork")
    anvil.with_fork_block_number(19000000).with_hardfork("cancun").no_mining()
    cmd = anvil.command
    for flag, value in [
        ("--accounts", "3"),
        ("--balance", "1000"),
        ("--block-time", "2"),
        ("--fork-url", "http://fork"),
        ("--fork-block-number", "19000000"),
        ("--hardfork", "cancun"),
    ]:
        assert cmd[cmd.index(flag) + 1] == value
    assert "--no-mining" in cmd


def test_single_verbosity_level(anvil):
    anvil.verbose_logs(LogVerbosity.Three).verbose_logs(LogVerbosity.Three)
    assert anvil.command.count("-vvv") == 1
    with pytest.raises(ConfigurationError):
        anvil.verbose_logs(LogVerbosity.Five)


def test_flags_rejected_after_start(anvil):
    anvil.start()
    with pytest.raises(ConfigurationError):
        anvil.json_log_format()
    with pytest.raises(ConfigurationError):
        anvil.with_rpc_factory(FakeEvmRpc)


def test_rpc_url_uses_mapped_port(docker_client, anvil):
    node = anvil.start()
    assert node.rpc_url == "http://localhost:40000"
    assert node.client.url == node.rpc_url
    assert docker_client.created[0].entrypoint == ["anvil"]


def test_send_eth_transaction_mines_before_receipt(anvil):
    node = anvil.start()
    addresses = node.addresses()
    assert len(addresses) >= 2

    receipt = node.send_eth_transaction(addresses[0], addresses[1], "1")

    client = node.client
    assert names(client) == ["send_transaction", "mine", "wait_for_transaction_receipt"]
    assert client.calls[0][1] == {"from": addresses[0], "to": addresses[1], "value": WEI_PER_ETHER}
    assert client.calls[1][1] == 1
    assert receipt_status(receipt) == "success"
    assert receipt["from"] == addresses[0].lower()
    assert receipt["to"] == addresses[1].lower()


def test_reverted_transaction_is_reported_through_receipt(anvil):
    node = anvil.start()
    node.client.status = 0
    receipt = node.send_eth_transaction(ADDRESSES[0], ADDRESSES[1], "0.5")
    assert receipt_status(receipt) == "reverted"
    assert node.client.calls[0][1]["value"] == WEI_PER_ETHER // 2


def test_deploy_and_invoke(anvil):
    node = anvil.start()
    deployed = node.deploy_contract([], "0x6000", ADDRESSES[0], 7)
    assert deployed["contractAddress"] == CONTRACT_ADDRESS
    node.invoke_contract("0xabc", [], "deposit", account=ADDRESSES[0], value=WEI_PER_ETHER)

    client = node.client
    assert names(client) == [
        "deploy_contract",
        "mine",
        "wait_for_transaction_receipt",
        "write_contract",
        "mine",
        "wait_for_transaction_receipt",
    ]
    assert client.calls[0][1:] == ("0x6000", ADDRESSES[0], (7,))
    assert client.calls[3][1:] == ("0xabc", "deposit", (), WEI_PER_ETHER, ADDRESSES[0])


def test_read_contract_sends_no_transaction(anvil):
    node = anvil.start()
    assert node.read_contract(CONTRACT_ADDRESS, [], "balanceOf", ADDRESSES[0]) == WEI_PER_ETHER
    assert node.client.calls == [("read_contract", CONTRACT_ADDRESS, "balanceOf", (ADDRESSES[0],))]


def test_anvil_rpc_helpers(anvil):
    node = anvil.start()
    node.set_balance(ADDRESSES[1], 5)
    assert node.snapshot() == "0x1"
    assert node.revert("0x1") is True
    assert node.client.calls == [
        ("request", "anvil_setBalance", [ADDRESSES[1], "0x5"]),
        ("request", "evm_snapshot", []),
        ("request", "evm_revert", ["0x1"]),
    ]


def test_web3_requires_default_client(anvil):
    node = anvil.start()
    with pytest.raises(TypeError):
        node.web3


def test_rpc_factory_failure_stops_container(docker_client, anvil):
    def broken(url):
        raise ConnectionError(url)

    anvil.with_rpc_factory(broken)
    with pytest.raises(ConnectionError):
        anvil.start()
    assert docker_client.inventory == []


def test_client_unavailable_after_stop(anvil):
    node = anvil.start()
    node.stop()
    with pytest.raises(ContainerStoppedError):
        node.addresses()
    with pytest.raises(ContainerStoppedError):
        node.rpc_url


def test_contract_artifacts(anvil, tmp_path):
    abi = [{"type": "function", "name": "deposit", "inputs": [], "outputs": []}]
    (tmp_path / "Token.json").write_text(json.dumps({"abi": abi}))
    (tmp_path / "Token.bin").write_text("6080\n6040\n")

    node = anvil.with_contracts_dir(tmp_path).start()
    assert node.contract_abi("Token.json") == abi
    assert node.contract_bytecode("Token.bin") == "0x60806040"
