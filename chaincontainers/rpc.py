"""
JSON-RPC 2.0 client used for validator helpers and readiness probes.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

import requests

# Server error returned by solana-test-validator while it is still catching up
NODE_UNHEALTHY = -32005


class RpcError(Exception):
    """Error object returned by the node for ``method``."""

    def __init__(self, error: dict, method: str | None = None):
        self.method = method
        self.code = error.get("code")
        self.message = error.get("message")
        self.data = error.get("data")
        where = f" in {method}" if method else ""
        super().__init__(f"RPC Error {self.code}{where}: {self.message}")

    @property
    def node_unhealthy(self) -> bool:
        return self.code == NODE_UNHEALTHY


def unwrap_value(result: Any) -> Any:
    """Strip the ``{"context": ..., "value": ...}`` envelope of slot-scoped responses."""
    if isinstance(result, dict) and "context" in result and "value" in result:
        return result["value"]
    return result


class JsonRpcClient:
    """
    JSON-RPC 2.0 client over one HTTP session.

    Methods can be called as attributes or through ``call``:
        rpc = JsonRpcClient("http://localhost:8899")
        rpc.getSlot({"commitment": "confirmed"})
        rpc.call("getBalance", pubkey)

    ``set_pre_call_hook`` installs a callable that runs before every request
    and may raise to veto it.
    """

    def __init__(self, url: str, name: str | None = None, timeout: int = 30):
        self.url = url
        self.name = name or url
        self.timeout = timeout
        self.logger = logging.getLogger(f"rpc.{self.name}")
        self.pre_call_hook: Callable[[str], None] = lambda _: None
        self._next_id = 0
        self._session = requests.Session()

    def set_pre_call_hook(self, hook: Callable[[str], None]):
        self.pre_call_hook = hook

    def __getattr__(self, method: str):
        if method.startswith("_"):
            raise AttributeError(method)
        return lambda *params: self._call(method, params)

    def _payload(self, method: str, params: tuple) -> dict[str, Any]:
        self._next_id += 1
        return {"jsonrpc": "2.0", "method": method, "params": list(params), "id": self._next_id}

    def _call(self, method: str, params: tuple) -> Any:
        """
        Raises:
            RpcError: If the node answers with an error object or invalid JSON
            requests.RequestException: If the HTTP request fails
        """
        self.pre_call_hook(method)
        payload = self._payload(method, params)
        self.logger.debug(f"RPC call: {method}({params})")

        try:
            resp = self._session.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            self.logger.warning(f"RPC request {method} failed: {e}")
            raise

        try:
            body = resp.json()
        except json.JSONDecodeError as e:
            self.logger.warning(f"Invalid JSON response to {method}: {resp.text}")
            raise RpcError({"code": -1, "message": f"Invalid JSON: {e}"}, method) from e

        if "error" in body:
            err = RpcError(body["error"] or {}, method)
            # Expected while the node starts up
            log = self.logger.debug if err.node_unhealthy else self.logger.warning
            log(f"RPC error: {body['error']}")
            raise err
        return body.get("result")

    def call(self, method: str, *params) -> Any:
        return self._call(method, params)

    def call_value(self, method: str, *params) -> Any:
        """Like ``call`` but returns only the ``value`` of slot-scoped responses."""
        return unwrap_value(self._call(method, params))

    def close(self):
        self._session.close()


def rpc_responds(url: str, method: str, expected: Any = None, timeout: int = 2) -> bool:
    """
    Readiness probe: True once ``method`` answers without error.

    Connection failures and "node unhealthy" errors count as not ready yet;
    any other RPC error propagates. If ``expected`` is given the result must
    also equal it.
    """
    rpc = JsonRpcClient(url, name=f"probe.{method}", timeout=timeout)
    try:
        result = rpc.call(method)
    except requests.ConnectionError:
        return False
    except RpcError as e:
        if e.node_unhealthy:
            return False
        raise
    finally:
        rpc.close()
    if expected is not None:
        return result == expected
    return True
