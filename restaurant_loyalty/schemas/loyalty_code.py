from datetime import datetime
from typing import Optional

from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from restaurant_loyalty.clock import as_naive_utc


class LoyaltyCodeCreate(BaseModel):
    point_value: int = Field(gt=0)
    description: Optional[str] = Field(default=None, max_length=500)
    max_uses: Optional[int] = Field(default=None, gt=0)
    expiry_date: Optional[datetime] = None
    restaurant_id: Optional[UUID] = None

    @field_validator("expiry_date")
    @classmethod
    def to_utc(cls, v):
        return as_naive_utc(v)


class LoyaltyCodeOut(BaseModel):
    id: UUID
    code: str
    point_value: int
    description: Optional[str] = None

    is_active: bool
    max_uses: Optional[int] = None
    current_uses: int

    expiry_date: Optional[datetime] = None

    is_used: bool
    used_by_customer_id: Optional[str] = None
    used_at: Optional[datetime] = None

    restaurant_id: Optional[UUID] = None
    created_by_admin_id: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RedeemCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    # restaurant the customer is redeeming at, checked against restaurant-scoped codes
    restaurantId: Optional[UUID] = None
