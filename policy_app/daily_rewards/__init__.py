"""
Daily reward module.
"""

from .services import DailyRewardService

__all__ = ["DailyRewardService"]
