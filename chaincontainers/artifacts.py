"""
Contract artifact loading (ABI JSON and hex bytecode files).
"""

import json
from pathlib import Path
from typing import Any


def load_abi(path: str | Path) -> list[dict[str, Any]]:
    """
    Load an ABI from a JSON file.

    Accepts either a bare ABI array or a compiler artifact with an ``abi`` key.
    """
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data["abi"]
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain an ABI array")
    return data


def load_bytecode(path: str | Path) -> str:
    """Load hex bytecode, normalized to a ``0x`` prefixed string."""
    text = "".join(Path(path).read_text().split())
    if not text:
        raise ValueError(f"{path} is empty")
    if not text.startswith("0x"):
        text = "0x" + text
    # Validates the hex payload
    bytes.fromhex(text[2:])
    return text
