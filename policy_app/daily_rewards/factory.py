"""
Factory for creating the daily reward service.
"""

from typing import Callable, Optional

from quota_policy.backends.base import PolicyBackend
from quota_policy.notifications import Notifier

from .services import DailyRewardService


def create_daily_rewards_module(
    backend: PolicyBackend,
    notifier: Notifier,
    get_user_id: Callable[[], Optional[str]],
    reward_config,
) -> dict:
    """Create the daily reward service for one session.

    Args:
        backend: Remote backend
        notifier: Session notifier
        get_user_id: Returns the session's user id
        reward_config: RewardConfig from config_manager

    Returns:
        Dictionary containing the service
    """
    service = DailyRewardService(
        backend,
        notifier,
        get_user_id,
        points_value=reward_config.points_value,
        item_value=reward_config.item_value,
    )
    return {"service": service}
