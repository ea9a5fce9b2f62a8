"""
Stubs copied into the WireMock container are served, and new ones can be added.
"""

import flexitest
import requests

from chaincontainers.config import ServiceType
from common.base_test import BaseTest


@flexitest.register
class TestWiremockMappings(BaseTest):
    def __init__(self, ctx: flexitest.InitContext):
        ctx.set_env("wiremock")

    def main(self, ctx):
        wiremock = self.get_service(ServiceType.Wiremock)

        resp = requests.get(f"{wiremock.rpc_url}/hello", timeout=10)
        assert resp.status_code == 200, resp.text
        assert resp.text.strip() == "Hello from WireMock"

        wiremock.add_mapping(
            {
                "request": {"method": "POST", "url": "/rpc"},
                "response": {"status": 200, "jsonBody": {"jsonrpc": "2.0", "id": 1, "result": "0x1"}},
            }
        )
        result = requests.post(f"{wiremock.rpc_url}/rpc", json={}, timeout=10).json()
        assert result["result"] == "0x1"

        urls = [r["request"]["url"] for r in wiremock.requests()]
        assert "/hello" in urls and "/rpc" in urls

        wiremock.reset()
        assert len(wiremock.mappings()) == 1, "reset should keep only file based mappings"
        return True
