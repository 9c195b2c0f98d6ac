"""
Quota ledger: client side of the server-authoritative usage counters.
"""

from .client import QuotaLedgerClient, SWIPE_ACTION, DISCOVERY_ACTION

__all__ = ["QuotaLedgerClient", "SWIPE_ACTION", "DISCOVERY_ACTION"]
