from datetime import datetime
from typing import Optional

from uuid import UUID

from pydantic import BaseModel, Field


class RedeemRewardRequest(BaseModel):
    rewardId: UUID


class UseCouponRequest(BaseModel):
    orderId: Optional[str] = Field(default=None, max_length=100)


class RewardRedemptionOut(BaseModel):
    id: UUID
    reward_id: UUID
    reward_name: str
    restaurant_id: UUID
    restaurant_name: str

    customer_id: str
    points_spent: int
    coupon_code: str

    redeemed_at: datetime
    is_used: bool
    used_at: Optional[datetime] = None
    order_id: Optional[str] = None
    expiry_date: Optional[datetime] = None
