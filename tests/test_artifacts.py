import json
from pathlib import Path

import pytest
from web3 import Web3

from chaincontainers.artifacts import load_abi, load_bytecode

CONTRACTS = Path(__file__).parent.parent / "functional-tests" / "contracts"


def test_load_abi_variants(tmp_path):
    abi = [{"type": "event", "name": "Deposit", "inputs": []}]
    (tmp_path / "bare.json").write_text(json.dumps(abi))
    (tmp_path / "artifact.json").write_text(json.dumps({"abi": abi, "bytecode": "0x00"}))
    (tmp_path / "bad.json").write_text(json.dumps({"abi": {}}))

    assert load_abi(tmp_path / "bare.json") == abi
    assert load_abi(tmp_path / "artifact.json") == abi
    with pytest.raises(ValueError):
        load_abi(tmp_path / "bad.json")


def test_load_bytecode(tmp_path):
    (tmp_path / "a.bin").write_text("0x6001\n")
    (tmp_path / "b.bin").write_text("zz")
    (tmp_path / "c.bin").write_text("\n")

    assert load_bytecode(tmp_path / "a.bin") == "0x6001"
    with pytest.raises(ValueError):
        load_bytecode(tmp_path / "b.bin")
    with pytest.raises(ValueError):
        load_bytecode(tmp_path / "c.bin")


def test_wrapped_ether_dispatches_every_abi_entry():
    abi = load_abi(CONTRACTS / "WrappedEther" / "WrappedEther.json")
    bytecode = load_bytecode(CONTRACTS / "WrappedEther" / "WrappedEther.bin")

    functions = {entry["name"]: entry for entry in abi if entry["type"] == "function"}
    assert set(functions) == {"deposit", "withdraw", "balanceOf", "totalSupply"}
    for name, entry in functions.items():
        types = ",".join(i["type"] for i in entry["inputs"])
        signature = f"{name}({types})"
        selector = Web3.keccak(text=signature)[:4].hex().removeprefix("0x")
        # PUSH4 <selector>
        assert "63" + selector in bytecode, signature

    for event in ("Deposit(address,uint256)", "Withdrawal(address,uint256)"):
        topic = Web3.keccak(text=event).hex().removeprefix("0x")
        # PUSH32 <topic>
        assert "7f" + topic in bytecode, event
