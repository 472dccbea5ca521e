"""
Wallet Stores — Keyed persistence for wallet records and routing lookups.

The vault only needs ``get``/``put``/``list`` keyed on ``tenant_id``. The
store owns ``created_at``/``updated_at`` and enforces one record per tenant.
No locking happens here: concurrent read-modify-write on the same tenant can
race, the last ``put`` wins.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel

from .record import VerificationStatus, WalletRecord

logger = logging.getLogger("donation_vault.vault")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class WalletStore(Protocol):
    async def get(self, tenant_id: str) -> Optional[WalletRecord]: ...

    async def put(self, record: WalletRecord) -> WalletRecord: ...

    async def list(self) -> list[WalletRecord]: ...


class EventCreator(BaseModel):
    """Tenant that created an event, with its role."""

    tenant_id: str
    role: Optional[str] = None


@runtime_checkable
class EventDirectory(Protocol):
    async def get_event_creator(self, event_id: str) -> Optional[EventCreator]:
        """Return the event's creator, or None if the event or creator is unknown."""
        ...


@runtime_checkable
class AuditSink(Protocol):
    async def emit(self, action: str, tenant_id: Optional[str], **detail: Any) -> None: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------

class MemoryWalletStore:
    """Dict-backed store, one record per tenant."""

    def __init__(self):
        self._records: dict[str, WalletRecord] = {}

    async def get(self, tenant_id: str) -> Optional[WalletRecord]:
        return self._records.get(tenant_id)

    async def put(self, record: WalletRecord) -> WalletRecord:
        now = utcnow()
        existing = self._records.get(record.tenant_id)
        created = existing.created_at if existing else (record.created_at or now)
        stored = record.model_copy(update={"created_at": created, "updated_at": now})
        self._records[record.tenant_id] = stored
        return stored

    async def list(self) -> list[WalletRecord]:
        return list(self._records.values())


class MemoryEventDirectory:
    """Event id → creator mapping."""

    def __init__(self, events: Optional[dict[str, EventCreator]] = None):
        self._events = dict(events or {})

    def add(self, event_id: str, tenant_id: str, role: Optional[str]) -> None:
        self._events[event_id] = EventCreator(tenant_id=tenant_id, role=role)

    async def get_event_creator(self, event_id: str) -> Optional[EventCreator]:
        return self._events.get(event_id)


# ---------------------------------------------------------------------------
# SQL implementation
# ---------------------------------------------------------------------------

_SELECT_WALLET = """
SELECT tenant_id, public_key, secret_key, webhook_secret, is_active,
       verification_status, last_verified_at, last_verification_error,
       created_at, updated_at
FROM payments.tenant_wallets
WHERE tenant_id = $1
"""

_SELECT_ALL_WALLETS = """
SELECT tenant_id, public_key, secret_key, webhook_secret, is_active,
       verification_status, last_verified_at, last_verification_error,
       created_at, updated_at
FROM payments.tenant_wallets
ORDER BY created_at DESC
"""

_UPSERT_WALLET = """
INSERT INTO payments.tenant_wallets (
    tenant_id, public_key, secret_key, webhook_secret, is_active,
    verification_status, last_verified_at, last_verification_error
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
ON CONFLICT (tenant_id)
DO UPDATE SET public_key = EXCLUDED.public_key,
             secret_key = EXCLUDED.secret_key,
             webhook_secret = EXCLUDED.webhook_secret,
             is_active = EXCLUDED.is_active,
             verification_status = EXCLUDED.verification_status,
             last_verified_at = EXCLUDED.last_verified_at,
             last_verification_error = EXCLUDED.last_verification_error,
             updated_at = NOW()
RETURNING created_at, updated_at
"""


def _row_to_record(row: Any) -> WalletRecord:
    return WalletRecord(
        tenant_id=str(row["tenant_id"]),
        public_key=row["public_key"],
        secret_key=row["secret_key"],
        webhook_secret=row["webhook_secret"],
        is_active=row["is_active"],
        verification_status=VerificationStatus(row["verification_status"]),
        last_verified_at=row["last_verified_at"],
        last_verification_error=row["last_verification_error"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SQLWalletStore:
    """Wallet store over an asyncpg-compatible connection pool.

    Uniqueness on ``tenant_id`` comes from the table's primary key.
    """

    def __init__(self, db_pool: Any):
        self._db = db_pool

    async def get(self, tenant_id: str) -> Optional[WalletRecord]:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_WALLET, tenant_id)
        return _row_to_record(row) if row else None

    async def put(self, record: WalletRecord) -> WalletRecord:
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _UPSERT_WALLET,
                record.tenant_id, record.public_key, record.secret_key,
                record.webhook_secret, record.is_active,
                record.verification_status.value, record.last_verified_at,
                record.last_verification_error,
            )
        logger.debug("Wallet stored: tenant=%s", record.tenant_id)
        return record.model_copy(update={
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        })

    async def list(self) -> list[WalletRecord]:
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL_WALLETS)
        return [_row_to_record(row) for row in rows]
