import uuid
from sqlalchemy import Column, ForeignKey, String, TIMESTAMP, UniqueConstraint, Uuid

from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import Base
from restaurant_loyalty.models.audit import AuditMixin


class LoyaltyCodeUsage(AuditMixin, Base):
    __tablename__ = "loyalty_code_usages"

    __table_args__ = (
        UniqueConstraint("code_id", "customer_id", name="uq_loyalty_code_usages_code_id_customer_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    code_id = Column(Uuid(as_uuid=True), ForeignKey("loyalty_codes.id"), nullable=False)
    customer_id = Column(String(100), nullable=False)

    loyalty_point_id = Column(Uuid(as_uuid=True), ForeignKey("loyalty_points.id"), nullable=True)

    redeemed_at = Column(TIMESTAMP, nullable=False, default=utcnow)
