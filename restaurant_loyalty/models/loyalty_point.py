import uuid
from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, TIMESTAMP, Uuid

from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import Base
from restaurant_loyalty.models.audit import AuditMixin


EARNED = "EARNED"
BONUS = "BONUS"
REDEEMED = "REDEEMED"
EXPIRED = "EXPIRED"
ADJUSTMENT = "ADJUSTMENT"

POINT_TYPES = (EARNED, BONUS, REDEEMED, EXPIRED, ADJUSTMENT)
EARN_TYPES = (EARNED, BONUS, ADJUSTMENT)


class LoyaltyPoint(AuditMixin, Base):
    """One append-only ledger entry for a (customer, restaurant) pair."""

    __tablename__ = "loyalty_points"

    __table_args__ = (
        Index("ix_loyalty_points_customer_id_restaurant_id", "customer_id", "restaurant_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    customer_id = Column(String(100), nullable=False)

    # NULL = points from a global code
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=True)

    # positive for earn entries, negative for REDEEMED / EXPIRED
    points = Column(Integer, nullable=False)
    type = Column(String(20), nullable=False)  # EARNED / BONUS / REDEEMED / EXPIRED / ADJUSTMENT
    description = Column(String(500))

    order_id = Column(String(100), nullable=True)

    earned_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    expiry_date = Column(TIMESTAMP, nullable=True)

    is_redeemed = Column(Boolean, nullable=False, default=False)
    redeemed_at = Column(TIMESTAMP, nullable=True)
