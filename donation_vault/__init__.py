"""Donation Vault.

Multi-tenant payment credential vault and donation routing.
"""
from .version import __version__
from .routing import DonationRouter, DonationContext, RecipientKind, RouteResult

__all__ = [
    "__version__",
    "DonationRouter",
    "DonationContext",
    "RecipientKind",
    "RouteResult",
]
