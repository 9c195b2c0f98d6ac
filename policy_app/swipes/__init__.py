"""
Daily swipe quota.
"""

from .manager import SwipeQuotaManager, UNLIMITED_DISPLAY

__all__ = ["SwipeQuotaManager", "UNLIMITED_DISPLAY"]
