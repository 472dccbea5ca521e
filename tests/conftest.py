"""Shared fixtures for vault tests."""
import asyncio

import pytest
from aiohttp import web

from donation_vault.vault.config import PlatformCredentials, VaultConfig
from donation_vault.vault.crypto import encrypt_field
from donation_vault.vault.record import WalletRecord
from donation_vault.vault.resolver import VaultResolver
from donation_vault.vault.store import MemoryEventDirectory, MemoryWalletStore

MASTER_KEY_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
OTHER_KEY_HEX = "ffeeddccbbaa99887766554433221100ffeeddccbbaa99887766554433221100"

PUBLIC_KEY = "pk_test_org1PUBLIC1234"
SECRET_KEY = "sk_test_org1SECRET9876"
WEBHOOK_SECRET = "whsk_org1HOOK5555"


def gateway_app(status: int, body: dict | None = None, delay: float = 0.0):
    """Fake gateway answering the probe with a fixed status."""
    calls = []

    async def payment_methods(request: web.Request) -> web.Response:
        calls.append(request)
        if delay:
            await asyncio.sleep(delay)
        return web.json_response(body or {"data": []}, status=status)

    app = web.Application()
    app.router.add_get("/v1/payment_methods", payment_methods)
    return app, calls


class RecordingAudit:
    """Audit sink that keeps emitted events in memory."""

    def __init__(self):
        self.events = []

    async def emit(self, action, tenant_id, **detail):
        self.events.append((action, tenant_id, detail))


@pytest.fixture
def master_key() -> bytes:
    return bytes.fromhex(MASTER_KEY_HEX)


@pytest.fixture
def other_key() -> bytes:
    return bytes.fromhex(OTHER_KEY_HEX)


@pytest.fixture
def platform() -> PlatformCredentials:
    return PlatformCredentials(
        public_key="pk_live_platformPUB1",
        secret_key="sk_live_platformSEC2",
        webhook_secret="whsk_platformHOOK3",
    )


@pytest.fixture
def config(platform) -> VaultConfig:
    return VaultConfig(master_key=MASTER_KEY_HEX, platform=platform)


@pytest.fixture
def store() -> MemoryWalletStore:
    return MemoryWalletStore()


@pytest.fixture
def events() -> MemoryEventDirectory:
    return MemoryEventDirectory()


@pytest.fixture
def resolver(config, store) -> VaultResolver:
    return VaultResolver(config, store)


@pytest.fixture
def audit() -> RecordingAudit:
    return RecordingAudit()


@pytest.fixture
def encrypted_record(master_key) -> WalletRecord:
    """Active wallet with all three fields encrypted."""
    return WalletRecord(
        tenant_id="org-1",
        public_key=encrypt_field(PUBLIC_KEY, master_key),
        secret_key=encrypt_field(SECRET_KEY, master_key),
        webhook_secret=encrypt_field(WEBHOOK_SECRET, master_key),
    )
