"""
Daily reward service: one reward per user per calendar day.
"""

import logging
import random
from datetime import date, datetime, timezone
from typing import Callable, Optional

from quota_policy.backends.base import PolicyBackend
from quota_policy.errors import PolicyError, remote_operation
from quota_policy.lifecycle import SessionComponent
from quota_policy.models import DailyReward, RewardType
from quota_policy.notifications import Notifier

logger = logging.getLogger(__name__)

REWARD_TYPES = (RewardType.SUPER_LIKE, RewardType.BOOST, RewardType.POINTS)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DailyRewardService(SessionComponent):
    """
    Lazily creates and claims the session user's reward for today.

    Creation is a backend upsert keyed by (user, day), so concurrent first
    checks of the day all end up with the same row.
    """

    def __init__(
        self,
        backend: PolicyBackend,
        notifier: Notifier,
        get_user_id: Callable[[], Optional[str]],
        points_value: int = 50,
        item_value: int = 1,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        super().__init__()
        self.backend = backend
        self.notifier = notifier
        self.get_user_id = get_user_id
        self.points_value = points_value
        self.item_value = item_value
        self._rng = rng or random.Random()
        self._today = today or _utc_today
        self._reward: Optional[DailyReward] = None
        self._loading = True

    @property
    def today_reward(self) -> Optional[DailyReward]:
        return self._reward

    @property
    def loading(self) -> bool:
        return self._loading

    def check_daily_reward(self) -> Optional[DailyReward]:
        """Get today's reward, creating it if this is the first check of the day."""
        user_id = self.get_user_id()
        if not user_id or self.is_closed:
            return None

        reward_type = self._rng.choice(REWARD_TYPES)
        reward_value = self.points_value if reward_type is RewardType.POINTS else self.item_value
        try:
            with remote_operation("get_or_create_daily_reward"):
                reward = self.backend.get_or_create_daily_reward(
                    user_id, self._today(), reward_type, reward_value
                )
        except PolicyError as e:
            logger.error(f"Error checking daily reward for {user_id}: {e}")
            return self._reward
        finally:
            self._loading = False

        if self._discard_if_closed("check_daily_reward"):
            return None
        self._reward = reward
        return reward

    def claim_daily_reward(self) -> bool:
        """
        Claim today's reward.

        Returns:
            True if the reward was claimed now; False if there is none, it
            was already claimed, or the claim failed
        """
        reward = self._reward
        if reward is None or reward.claimed or self.is_closed:
            return False

        try:
            with remote_operation("claim_daily_reward"):
                self.backend.claim_daily_reward(reward.id)
        except PolicyError as e:
            logger.error(f"Error claiming reward {reward.id}: {e}")
            return False

        if self._discard_if_closed("claim_daily_reward"):
            return True
        self._reward = reward.model_copy(update={"claimed": True})
        self.notifier.notify(
            "Daily Reward Claimed!",
            f"You received {reward.describe()}!",
            variant="success",
        )
        logger.info(f"Daily reward {reward.id} claimed: {reward.describe()}")
        return True
