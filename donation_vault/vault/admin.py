"""
WalletAdmin — Administrative lifecycle of tenant wallets.

Provides:
- ``create_wallet`` / ``update_wallet`` — store and rotate credentials
- ``deactivate`` / ``reactivate`` — wallets are never deleted
- ``get_wallet`` / ``wallet_status`` / ``list_wallets`` — masked reads
- ``verify_wallet`` — probe the gateway and write back the snapshot

New and rotated credentials go through ``encrypt_on_write`` before they reach
the store; activation and verification write-backs reuse records read back
from the store, which are already encrypted. Audit events are fire-and-forget.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .exceptions import WalletExists, WalletNotFound
from .record import (
    VerificationStatus,
    WalletRecord,
    apply_rotation,
    apply_verification,
    display,
    encrypt_on_write,
    status_summary,
)
from .resolver import VaultResolver
from .store import AuditSink, utcnow
from .verification import GatewayVerifier, VerificationResult

logger = logging.getLogger("donation_vault.vault")


class WalletAdmin:
    """Administrative operations on tenant wallets.

    Args:
        resolver: Vault resolver (provides config and store).
        verifier: Gateway verifier used by ``verify_wallet``.
        audit: Optional audit sink.
        clock: Callable returning the current time (UTC).
    """

    def __init__(
        self,
        resolver: VaultResolver,
        verifier: Optional[GatewayVerifier] = None,
        audit: Optional[AuditSink] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._resolver = resolver
        self._config = resolver.config
        self._store = resolver.store
        self._verifier = verifier or GatewayVerifier(
            base_url=self._config.api_base,
            timeout=self._config.verify_timeout,
        )
        self._audit_sink = audit
        self._clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _audit(self, action: str, tenant_id: str, **detail: Any) -> None:
        if self._audit_sink is None:
            return
        try:
            await self._audit_sink.emit(action, tenant_id, **detail)
        except Exception as err:
            logger.warning(
                "Audit sink failed for action=%s tenant=%s: %s",
                action, tenant_id, err,
            )

    async def _save(self, record: WalletRecord) -> WalletRecord:
        master_key = self._config.require_master_key()
        encrypted = await asyncio.to_thread(
            encrypt_on_write, record, master_key,
        )
        return await self._store.put(encrypted)

    async def _load(self, tenant_id: str) -> WalletRecord:
        record = await self._store.get(tenant_id)
        if record is None:
            raise WalletNotFound(tenant_id)
        return record

    async def _display(self, record: WalletRecord, privileged: bool) -> dict:
        return await asyncio.to_thread(
            display, record, self._config.master_key, privileged,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_wallet(
        self,
        tenant_id: str,
        public_key: str,
        secret_key: str,
        webhook_secret: Optional[str] = None,
    ) -> dict:
        """Create and encrypt a wallet for a tenant.

        Raises:
            ValueError: If a required key is missing.
            WalletExists: If the tenant already has a wallet.
        """
        if not tenant_id or not public_key or not secret_key:
            raise ValueError("tenant_id, public_key and secret_key are required")
        if await self._store.get(tenant_id) is not None:
            raise WalletExists(tenant_id)
        record = WalletRecord(
            tenant_id=tenant_id,
            public_key=public_key,
            secret_key=secret_key,
            webhook_secret=webhook_secret or None,
            is_active=True,
            verification_status=VerificationStatus.PENDING,
        )
        stored = await self._save(record)
        await self._audit("wallet.create", tenant_id)
        logger.info("Wallet created: tenant=%s", tenant_id)
        return await self._display(stored, privileged=True)

    async def update_wallet(self, tenant_id: str, **changes: Any) -> dict:
        """Rotate credentials and/or toggle activation.

        Accepted keyword arguments: ``public_key``, ``secret_key``,
        ``webhook_secret``, ``is_active``.
        """
        unknown = set(changes) - {"public_key", "secret_key", "webhook_secret", "is_active"}
        if unknown:
            raise ValueError(f"Unsupported wallet fields: {sorted(unknown)}")
        record = apply_rotation(await self._load(tenant_id), **changes)
        stored = await self._save(record)
        await self._audit("wallet.update", tenant_id, fields=sorted(changes))
        logger.info("Wallet updated: tenant=%s fields=%s", tenant_id, sorted(changes))
        return await self._display(stored, privileged=True)

    async def _set_active(self, tenant_id: str, active: bool) -> WalletRecord:
        record = await self._load(tenant_id)
        stored = await self._store.put(record.model_copy(update={"is_active": active}))
        action = "wallet.reactivate" if active else "wallet.deactivate"
        await self._audit(action, tenant_id)
        logger.info("Wallet %s: tenant=%s", action, tenant_id)
        return stored

    async def deactivate(self, tenant_id: str) -> WalletRecord:
        return await self._set_active(tenant_id, False)

    async def reactivate(self, tenant_id: str) -> WalletRecord:
        return await self._set_active(tenant_id, True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_wallet(self, tenant_id: str, privileged: bool = False) -> dict:
        """Masked wallet view; ``privileged`` is the administrator form."""
        return await self._display(await self._load(tenant_id), privileged)

    async def wallet_status(self, tenant_id: str) -> dict:
        record = await self._load(tenant_id)
        return await asyncio.to_thread(
            status_summary, record, self._config.master_key,
        )

    async def list_wallets(self) -> list[dict]:
        """All wallets, newest first, in administrator form."""
        records = sorted(
            await self._store.list(),
            key=lambda r: r.created_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )
        return [await self._display(record, privileged=True) for record in records]

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def verify_wallet(
        self, tenant_id: str, strict: bool = False
    ) -> tuple[WalletRecord, VerificationResult]:
        """Verify a wallet's credentials and record the outcome.

        Performs exactly one gateway call. Repeated runs overwrite the
        previous snapshot.

        Raises:
            WalletNotFound: If the tenant has no wallet.
            CredentialsCorrupted: If the stored keys cannot be decrypted.
            VerificationFailed: Only with ``strict=True``, after write-back.
        """
        record = await self._load(tenant_id)
        keys = await self._resolver.decrypt(record)
        result = await self._verifier.verify(keys.public_key, keys.secret_key)
        stored = await self._store.put(
            apply_verification(record, result.valid, result.error, self._clock())
        )
        await self._audit(
            "wallet.verify", tenant_id, verified=result.valid,
        )
        if not result.valid:
            logger.warning(
                "Wallet verification failed: tenant=%s error=%s",
                tenant_id, result.error,
            )
        if strict:
            result.raise_for_failure()
        return stored, result
