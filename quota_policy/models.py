"""
Wire records exchanged with the backend.

These Pydantic models mirror the rows and function payloads returned by the
remote service.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RewardType(str, Enum):
    """Kinds of daily reward."""
    SUPER_LIKE = "super_like"
    BOOST = "boost"
    POINTS = "points"


class SubscriptionRecord(BaseModel):
    """A user's subscription row."""
    model_config = ConfigDict(extra="ignore")

    user_id: Optional[str] = Field(default=None, description="Owner of the subscription")
    tier: Optional[str] = Field(default=None, description="Stored tier name (free/basic/premium/elite)")
    status: Optional[str] = Field(default=None, description="Billing status, e.g. 'active'")
    current_period_end: Optional[datetime] = Field(default=None, description="End of the paid period")


class DailyReward(BaseModel):
    """One reward per user per calendar day."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Row identifier")
    user_id: Optional[str] = Field(default=None, description="Owner of the reward")
    reward_type: RewardType = Field(description="super_like, boost or points")
    reward_value: int = Field(default=1, description="Amount granted when claimed")
    claimed: bool = Field(default=False, description="Whether the reward was claimed")
    reward_date: date = Field(description="Calendar day the reward belongs to")

    @field_validator("claimed", mode="before")
    @classmethod
    def _null_claimed(cls, value):
        return bool(value) if value is not None else False

    @field_validator("reward_value", mode="before")
    @classmethod
    def _null_value(cls, value):
        return 1 if value is None else value

    def describe(self) -> str:
        """Human readable reward, e.g. '50 points' or '2 boosts'."""
        name = self.reward_type.value
        if self.reward_value > 1 and not name.endswith("s"):
            name = f"{name}s"
        return f"{self.reward_value} {name}"


class CheckoutSession(BaseModel):
    """Payment collaborator response for checkout and portal sessions."""
    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = Field(default=None, description="Hosted page the user should be sent to")
