# tests/conftest.py
"""
Fixtures partagées : un faux pilote wg et un registre sur tmp_path.
"""

import asyncio

import pytest

from wg_registry.config import Settings
from wg_registry.errors import DaemonError
from wg_registry.registry import TunnelRegistry


DUMP_HEADER = "SERVERPRIV\tSERVERPUB\t51820\toff"


class FakeDriver:
    """Remplace wg / wg-quick, enregistre les appels."""

    def __init__(self):
        self.calls = []
        self.dump_text = DUMP_HEADER
        self.up_error = None
        self.down_error = DaemonError(["wg-quick", "down", "wg0"], 1, "wg-quick: `wg0' is not a WireGuard interface")
        self._counter = 0

    async def generate_private_key(self):
        await asyncio.sleep(0)
        self._counter += 1
        self.calls.append("genkey")
        return f"priv-{self._counter}"

    async def derive_public_key(self, private_key):
        self.calls.append("pubkey")
        return private_key.replace("priv", "pub")

    async def generate_preshared_key(self):
        self._counter += 1
        self.calls.append("genpsk")
        return f"psk-{self._counter}"

    async def up(self):
        self.calls.append("up")
        if self.up_error is not None:
            raise self.up_error

    async def down(self):
        self.calls.append("down")
        if self.down_error is not None:
            raise self.down_error

    async def sync(self):
        self.calls.append("sync")
        await asyncio.sleep(0)
        self.calls.append("synced")

    async def dump(self):
        self.calls.append("dump")
        return self.dump_text


@pytest.fixture
def settings(tmp_path):
    return Settings(
        path=tmp_path,
        host="vpn.example.com",
        port=51820,
        default_address="10.8.0.0/24",
        default_dns="1.1.1.1",
        persistent_keepalive=25,
        post_up="iptables -A FORWARD -i wg0 -j ACCEPT",
        _env_file=None,
    )


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def registry(settings, driver):
    return TunnelRegistry(settings, driver=driver)
