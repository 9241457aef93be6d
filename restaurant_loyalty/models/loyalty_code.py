import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String, TIMESTAMP, Uuid

from restaurant_loyalty.db import Base
from restaurant_loyalty.models.audit import AuditMixin


class LoyaltyCode(AuditMixin, Base):
    __tablename__ = "loyalty_codes"

    __table_args__ = (
        CheckConstraint("point_value > 0", name="ck_loyalty_codes_point_value_positive"),
        CheckConstraint(
            "max_uses IS NULL OR current_uses <= max_uses",
            name="ck_loyalty_codes_current_uses_le_max_uses",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    code = Column(String(50), nullable=False, unique=True)
    point_value = Column(Integer, nullable=False)
    description = Column(String(500))

    created_by_admin_id = Column(String(100), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)

    # NULL = unlimited
    max_uses = Column(Integer, nullable=True)
    current_uses = Column(Integer, nullable=False, default=0)

    expiry_date = Column(TIMESTAMP, nullable=True)

    # only filled for single-use codes
    is_used = Column(Boolean, nullable=False, default=False)
    used_by_customer_id = Column(String(100), nullable=True)
    used_at = Column(TIMESTAMP, nullable=True)

    # NULL = global code, points land in the "General" balance
    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=True)
