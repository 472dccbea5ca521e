"""Donation routing.

Decides, once per donation, whose gateway credentials collect the money:
the platform default or a tenant's wallet.
"""
import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .vault.resolver import ClientConfig, VaultResolver
from .vault.store import EventDirectory

logger = logging.getLogger("donation_vault.routing")

ORGANIZATION_ROLE = "Department/Organization"


class RecipientKind(str, Enum):
    PLATFORM = "platform"
    EVENT = "event"
    DEPARTMENT = "department"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["RecipientKind"]:
        """Map a raw recipient kind; ``crd`` is the legacy platform name.

        Returns None for unrecognized values.
        """
        if not value or value == "crd":
            return cls.PLATFORM
        try:
            return cls(value)
        except ValueError:
            return None


class DonationContext(BaseModel):
    """Who a donation is for."""

    recipient_kind: Optional[str] = None
    event_id: Optional[str] = None
    department_id: Optional[str] = None


class RouteResult(BaseModel):
    config: ClientConfig
    tenant_id: Optional[str] = None

    @property
    def uses_platform(self) -> bool:
        return self.tenant_id is None


class DonationRouter:
    """Choose the credential source for a donation.

    Only the event creator's role check falls back silently. A tenant named
    explicitly, or an event creator that qualifies, must resolve or fail.

    Args:
        resolver: Vault resolver for tenant and platform credentials.
        events: Directory resolving an event to its creator.
        organization_role: Role a creator needs to collect into its own wallet.
    """

    def __init__(
        self,
        resolver: VaultResolver,
        events: EventDirectory,
        organization_role: str = ORGANIZATION_ROLE,
    ):
        self._resolver = resolver
        self._events = events
        self._organization_role = organization_role

    def _platform(self) -> RouteResult:
        return RouteResult(config=self._resolver.resolve_platform_default())

    async def _tenant(self, tenant_id: str) -> RouteResult:
        config = await self._resolver.resolve_tenant(tenant_id)
        return RouteResult(config=config, tenant_id=tenant_id)

    async def route_donation(self, context: DonationContext) -> RouteResult:
        """Resolve the credentials a donation must be processed with.

        Raises:
            WalletNotFound, WalletInactive, CredentialsCorrupted: From a
                tenant wallet chosen by the routing table.
            PlatformCredentialsMissing: If the platform default is chosen but
                not configured.
        """
        kind = RecipientKind.parse(context.recipient_kind)

        if kind is RecipientKind.EVENT and context.event_id:
            creator = await self._events.get_event_creator(context.event_id)
            if creator is None:
                logger.info(
                    "Event %s not found or has no creator, using platform wallet",
                    context.event_id,
                )
                return self._platform()
            if creator.role != self._organization_role:
                logger.info(
                    "Event %s creator is not an organization, using platform wallet",
                    context.event_id,
                )
                return self._platform()
            return await self._tenant(creator.tenant_id)

        if kind is RecipientKind.DEPARTMENT and context.department_id:
            return await self._tenant(context.department_id)

        if kind is None:
            logger.info(
                "Unrecognized recipient kind %r, using platform wallet",
                context.recipient_kind,
            )
        return self._platform()

    async def webhook_secret_for(self, result: RouteResult) -> Optional[str]:
        """Webhook secret matching a routing decision."""
        return await self._resolver.resolve_webhook_secret(result.tenant_id)
