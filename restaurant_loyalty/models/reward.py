import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String, TIMESTAMP, Uuid

from restaurant_loyalty.db import Base
from restaurant_loyalty.models.audit import AuditMixin


class Reward(AuditMixin, Base):
    __tablename__ = "rewards"

    __table_args__ = (
        CheckConstraint("points_required > 0", name="ck_rewards_points_required_positive"),
        CheckConstraint(
            "max_redemptions IS NULL OR current_redemptions <= max_redemptions",
            name="ck_rewards_current_redemptions_le_max_redemptions",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    restaurant_id = Column(Uuid(as_uuid=True), ForeignKey("restaurants.id"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=False, default="")

    points_required = Column(Integer, nullable=False)

    discount_amount = Column(Numeric(18, 2), nullable=True)
    discount_percentage = Column(Integer, nullable=True)

    image_url = Column(String(500), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    # NULL bounds = unbounded window
    start_date = Column(TIMESTAMP, nullable=True)
    end_date = Column(TIMESTAMP, nullable=True)

    # NULL = unlimited; current_redemptions only moves through redemption_service
    max_redemptions = Column(Integer, nullable=True)
    current_redemptions = Column(Integer, nullable=False, default=0)

    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}
