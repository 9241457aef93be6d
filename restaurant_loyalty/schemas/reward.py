from datetime import datetime
from decimal import Decimal
from typing import Optional

from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from restaurant_loyalty.clock import as_naive_utc


class _RewardFields(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    points_required: int = Field(gt=0)

    discount_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=18, decimal_places=2)
    discount_percentage: Optional[int] = Field(default=None, ge=1, le=100)

    image_url: Optional[str] = Field(default=None, max_length=500)

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    max_redemptions: Optional[int] = Field(default=None, gt=0)

    @field_validator("start_date", "end_date")
    @classmethod
    def to_utc(cls, v):
        return as_naive_utc(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class RewardCreate(_RewardFields):
    restaurant_id: UUID


class RewardUpdate(_RewardFields):
    is_active: bool = True


class RewardOut(BaseModel):
    id: UUID
    restaurant_id: UUID
    restaurant_name: str = ""

    name: str
    description: str
    points_required: int

    discount_amount: Optional[Decimal] = None
    discount_percentage: Optional[int] = None
    image_url: Optional[str] = None

    is_active: bool
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    max_redemptions: Optional[int] = None
    current_redemptions: int

    # computed per request, never stored
    can_redeem: bool = False
    # catalogue rules only, regardless of any balance
    is_redeemable: bool = False

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
