"""Donation Vault Meta information.
   Donation Vault keeps per-tenant payment gateway credentials encrypted
   at rest and routes donations to the wallet that must receive them.
"""
__title__ = 'donation_vault'
__description__ = (
   'Multi-tenant payment credential vault and gateway routing '
   'for donation platforms.'
)
__version__ = '0.3.0'
__license__ = 'Apache-2.0'
