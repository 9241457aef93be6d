from datetime import datetime
from typing import List, Optional

from uuid import UUID

from pydantic import BaseModel


class LoyaltyPointOut(BaseModel):
    id: UUID
    customer_id: str
    restaurant_id: Optional[UUID] = None
    restaurant_name: str = "General"

    points: int
    type: str
    description: Optional[str] = None
    order_id: Optional[str] = None

    earned_at: datetime
    expiry_date: Optional[datetime] = None

    is_redeemed: bool
    redeemed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerLoyaltyBalanceOut(BaseModel):
    customer_id: str
    restaurant_id: Optional[UUID] = None
    restaurant_name: str

    total_points: int
    available_points: int
    redeemed_points: int
    expired_points: int

    recent_transactions: List[LoyaltyPointOut] = []
