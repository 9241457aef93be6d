import uuid
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, TIMESTAMP, Uuid

from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import Base
from restaurant_loyalty.models.audit import AuditMixin


class RewardRedemption(AuditMixin, Base):
    __tablename__ = "reward_redemptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    customer_id = Column(String(100), nullable=False, index=True)
    reward_id = Column(Uuid(as_uuid=True), ForeignKey("rewards.id"), nullable=False)

    # the REDEEMED ledger entry that paid for this coupon
    loyalty_point_id = Column(Uuid(as_uuid=True), ForeignKey("loyalty_points.id"), nullable=True)

    points_spent = Column(Integer, nullable=False)
    redeemed_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    coupon_code = Column(String(100), nullable=False, unique=True)

    is_used = Column(Boolean, nullable=False, default=False)
    used_at = Column(TIMESTAMP, nullable=True)
    order_id = Column(String(100), nullable=True)

    expiry_date = Column(TIMESTAMP, nullable=True)
