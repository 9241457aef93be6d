"""create loyalty codes, points, rewards and redemptions

Revision ID: 4d1e7a9c2b30
Revises:
Create Date: 2026-10-19 10:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4d1e7a9c2b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
    return [
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("deleted_at", sa.TIMESTAMP(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("restaurants"):
        op.create_table(
            "restaurants",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("owner_id", sa.String(length=100), nullable=False),
            *_audit_columns(),
        )
        op.create_index("ix_restaurants_owner_id", "restaurants", ["owner_id"])

    if not inspector.has_table("loyalty_codes"):
        op.create_table(
            "loyalty_codes",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("code", sa.String(length=50), nullable=False),
            sa.Column("point_value", sa.Integer(), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("created_by_admin_id", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("max_uses", sa.Integer(), nullable=True),
            sa.Column("current_uses", sa.Integer(), nullable=False),
            sa.Column("expiry_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("is_used", sa.Boolean(), nullable=False),
            sa.Column("used_by_customer_id", sa.String(length=100), nullable=True),
            sa.Column("used_at", sa.TIMESTAMP(), nullable=True),
            sa.Column("restaurant_id", sa.Uuid(), sa.ForeignKey("restaurants.id"), nullable=True),
            *_audit_columns(),
            sa.UniqueConstraint("code", name="uq_loyalty_codes_code"),
            sa.CheckConstraint("point_value > 0", name="ck_loyalty_codes_point_value_positive"),
            sa.CheckConstraint(
                "max_uses IS NULL OR current_uses <= max_uses",
                name="ck_loyalty_codes_current_uses_le_max_uses",
            ),
        )

    if not inspector.has_table("loyalty_points"):
        op.create_table(
            "loyalty_points",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(length=100), nullable=False),
            sa.Column("restaurant_id", sa.Uuid(), sa.ForeignKey("restaurants.id"), nullable=True),
            sa.Column("points", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("order_id", sa.String(length=100), nullable=True),
            sa.Column("earned_at", sa.TIMESTAMP(), nullable=False),
            sa.Column("expiry_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("is_redeemed", sa.Boolean(), nullable=False),
            sa.Column("redeemed_at", sa.TIMESTAMP(), nullable=True),
            *_audit_columns(),
        )
        op.create_index(
            "ix_loyalty_points_customer_id_restaurant_id",
            "loyalty_points",
            ["customer_id", "restaurant_id"],
        )

    if not inspector.has_table("loyalty_code_usages"):
        op.create_table(
            "loyalty_code_usages",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("code_id", sa.Uuid(), sa.ForeignKey("loyalty_codes.id"), nullable=False),
            sa.Column("customer_id", sa.String(length=100), nullable=False),
            sa.Column("loyalty_point_id", sa.Uuid(), sa.ForeignKey("loyalty_points.id"), nullable=True),
            sa.Column("redeemed_at", sa.TIMESTAMP(), nullable=False),
            *_audit_columns(),
            sa.UniqueConstraint("code_id", "customer_id", name="uq_loyalty_code_usages_code_id_customer_id"),
        )

    if not inspector.has_table("rewards"):
        op.create_table(
            "rewards",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("restaurant_id", sa.Uuid(), sa.ForeignKey("restaurants.id"), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.String(length=1000), nullable=False),
            sa.Column("points_required", sa.Integer(), nullable=False),
            sa.Column("discount_amount", sa.Numeric(18, 2), nullable=True),
            sa.Column("discount_percentage", sa.Integer(), nullable=True),
            sa.Column("image_url", sa.String(length=500), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False),
            sa.Column("start_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("end_date", sa.TIMESTAMP(), nullable=True),
            sa.Column("max_redemptions", sa.Integer(), nullable=True),
            sa.Column("current_redemptions", sa.Integer(), nullable=False),
            sa.Column("version_id", sa.Integer(), nullable=False),
            *_audit_columns(),
            sa.CheckConstraint("points_required > 0", name="ck_rewards_points_required_positive"),
            sa.CheckConstraint(
                "max_redemptions IS NULL OR current_redemptions <= max_redemptions",
                name="ck_rewards_current_redemptions_le_max_redemptions",
            ),
        )
        op.create_index("ix_rewards_restaurant_id", "rewards", ["restaurant_id"])

    if not inspector.has_table("reward_redemptions"):
        op.create_table(
            "reward_redemptions",
            sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
            sa.Column("customer_id", sa.String(length=100), nullable=False),
            sa.Column("reward_id", sa.Uuid(), sa.ForeignKey("rewards.id"), nullable=False),
            sa.Column("loyalty_point_id", sa.Uuid(), sa.ForeignKey("loyalty_points.id"), nullable=True),
            sa.Column("points_spent", sa.Integer(), nullable=False),
            sa.Column("redeemed_at", sa.TIMESTAMP(), nullable=False),
            sa.Column("coupon_code", sa.String(length=100), nullable=False),
            sa.Column("is_used", sa.Boolean(), nullable=False),
            sa.Column("used_at", sa.TIMESTAMP(), nullable=True),
            sa.Column("order_id", sa.String(length=100), nullable=True),
            sa.Column("expiry_date", sa.TIMESTAMP(), nullable=True),
            *_audit_columns(),
            sa.UniqueConstraint("coupon_code", name="uq_reward_redemptions_coupon_code"),
        )
        op.create_index("ix_reward_redemptions_customer_id", "reward_redemptions", ["customer_id"])


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    for table in (
        "reward_redemptions",
        "rewards",
        "loyalty_code_usages",
        "loyalty_points",
        "loyalty_codes",
        "restaurants",
    ):
        if inspector.has_table(table):
            op.drop_table(table)
