import logging
from datetime import timedelta

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from restaurant_loyalty import config
from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import not_deleted
from restaurant_loyalty.deps.auth import EMPLOYEE, AuthContext
from restaurant_loyalty.errors import (
    Conflict,
    CouponAlreadyUsed,
    CouponExpired,
    Forbidden,
    InsufficientPoints,
    LoyaltyError,
    RedemptionNotFound,
    RewardNotFound,
)
from restaurant_loyalty.models.loyalty_point import REDEEMED
from restaurant_loyalty.models.restaurant import Restaurant
from restaurant_loyalty.models.reward import Reward
from restaurant_loyalty.models.reward_redemption import RewardRedemption
from restaurant_loyalty.services.code_service import generate_token
from restaurant_loyalty.services.ledger_service import (
    append_entry,
    get_available_points,
    lock_ledger,
    mark_spent_batches,
    restaurant_names,
)
from restaurant_loyalty.services.reward_service import check_reward_redeemable


logger = logging.getLogger(__name__)

COUPON_PREFIX = "CPT-"

# postgres serialization_failure / deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
        return sqlstate in _RETRYABLE_SQLSTATES
    return False


def _generate_coupon_code(db: Session) -> str:
    for _ in range(max(1, config.CODE_GENERATION_ATTEMPTS)):
        candidate = generate_token(COUPON_PREFIX, 10)
        exists = db.query(RewardRedemption.id).filter(RewardRedemption.coupon_code == candidate).first()
        if not exists:
            return candidate
    raise Conflict("Could not generate a unique coupon code, please retry")


def serialize_redemption(redemption: RewardRedemption, reward: Reward, restaurant_name: str) -> dict:
    return {
        "id": redemption.id,
        "reward_id": reward.id,
        "reward_name": reward.name,
        "restaurant_id": reward.restaurant_id,
        "restaurant_name": restaurant_name,
        "customer_id": redemption.customer_id,
        "points_spent": redemption.points_spent,
        "coupon_code": redemption.coupon_code,
        "redeemed_at": redemption.redeemed_at,
        "is_used": redemption.is_used,
        "used_at": redemption.used_at,
        "order_id": redemption.order_id,
        "expiry_date": redemption.expiry_date,
    }


# ============================================================
# REDEEM REWARD
# ============================================================
def _redeem_once(db: Session, reward_id, customer_id: str) -> tuple[RewardRedemption, Reward]:
    reward = (
        not_deleted(db.query(Reward), Reward)
        .filter(Reward.id == reward_id)
        .with_for_update()
        .first()
    )
    if not reward:
        raise RewardNotFound()

    now = utcnow()
    check_reward_redeemable(reward, now)

    # balance is re-derived under lock, never taken from an earlier read
    lock_ledger(db, customer_id, reward.restaurant_id)
    available = get_available_points(db, customer_id, reward.restaurant_id, now=now)
    if available < reward.points_required:
        raise InsufficientPoints(
            f"Insufficient points: {available} available, {reward.points_required} required"
        )

    debit = append_entry(
        db,
        customer_id=customer_id,
        restaurant_id=reward.restaurant_id,
        points=-reward.points_required,
        type=REDEEMED,
        description=f"Redeemed reward: {reward.name}",
        is_redeemed=True,
        at=now,
    )
    mark_spent_batches(db, customer_id, reward.restaurant_id, at=now)

    # version_id_col turns a concurrent bump into StaleDataError at flush
    reward.current_redemptions = (reward.current_redemptions or 0) + 1

    redemption = RewardRedemption(
        customer_id=customer_id,
        reward_id=reward.id,
        loyalty_point_id=debit.id,
        points_spent=reward.points_required,
        coupon_code=_generate_coupon_code(db),
        redeemed_at=now,
        is_used=False,
        expiry_date=now + timedelta(days=config.COUPON_VALIDITY_DAYS),
    )
    db.add(redemption)
    db.flush()

    return redemption, reward


def redeem_reward(db: Session, reward_id, customer_id: str, *, max_attempts: int | None = None) -> dict:
    attempts = max(1, max_attempts or config.REDEMPTION_MAX_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        try:
            redemption, reward = _redeem_once(db, reward_id, customer_id)
            db.commit()
        except LoyaltyError:
            db.rollback()
            raise
        except (StaleDataError, OperationalError) as e:
            db.rollback()
            if not _is_retryable(e):
                raise
            logger.warning(
                "reward redemption conflict, retrying",
                extra={
                    "reward_id": str(reward_id),
                    "customer_id": customer_id,
                    "attempt": attempt,
                    "max_attempts": attempts,
                },
            )
            continue

        db.refresh(redemption)
        db.refresh(reward)
        name = restaurant_names(db, [reward.restaurant_id]).get(reward.restaurant_id, "")

        logger.info(
            "reward redeemed",
            extra={
                "reward_id": str(reward.id),
                "redemption_id": str(redemption.id),
                "customer_id": customer_id,
                "points_spent": redemption.points_spent,
                "attempt": attempt,
            },
        )
        return serialize_redemption(redemption, reward, name)

    logger.error(
        "reward redemption gave up after concurrent updates",
        extra={"reward_id": str(reward_id), "customer_id": customer_id, "max_attempts": attempts},
    )
    raise Conflict()


# ============================================================
# CUSTOMER - redemption history
# ============================================================
def _redemptions_query(db: Session):
    return (
        db.query(RewardRedemption, Reward)
        .join(Reward, Reward.id == RewardRedemption.reward_id)
        .filter(RewardRedemption.is_deleted.is_(False))
    )


def list_customer_redemptions(db: Session, customer_id: str) -> list[dict]:
    rows = (
        _redemptions_query(db)
        .filter(RewardRedemption.customer_id == customer_id)
        .order_by(RewardRedemption.redeemed_at.desc())
        .all()
    )
    names = restaurant_names(db, [reward.restaurant_id for _, reward in rows])
    return [
        serialize_redemption(redemption, reward, names.get(reward.restaurant_id, ""))
        for redemption, reward in rows
    ]


def get_redemption(db: Session, redemption_id, customer_id: str) -> dict:
    row = (
        _redemptions_query(db)
        .filter(RewardRedemption.id == redemption_id)
        .filter(RewardRedemption.customer_id == customer_id)
        .first()
    )
    if not row:
        raise RedemptionNotFound()
    redemption, reward = row
    names = restaurant_names(db, [reward.restaurant_id])
    return serialize_redemption(redemption, reward, names.get(reward.restaurant_id, ""))


# ============================================================
# USE COUPON (owner / employee at the counter)
# ============================================================
def use_redemption(db: Session, coupon_code: str, ctx: AuthContext, order_id: str | None = None) -> dict:
    row = (
        _redemptions_query(db)
        .filter(RewardRedemption.coupon_code == (coupon_code or "").strip().upper())
        .with_for_update(of=RewardRedemption)
        .first()
    )
    if not row:
        raise RedemptionNotFound()
    redemption, reward = row

    restaurant = db.query(Restaurant).filter(Restaurant.id == reward.restaurant_id).first()
    if ctx.role == EMPLOYEE:
        allowed = ctx.restaurant_id is not None and ctx.restaurant_id == reward.restaurant_id
    else:
        allowed = restaurant is not None and restaurant.owner_id == ctx.user_id
    if not allowed:
        raise Forbidden("This coupon belongs to another restaurant")

    now = utcnow()
    if redemption.is_used:
        raise CouponAlreadyUsed()
    if redemption.expiry_date is not None and redemption.expiry_date < now:
        raise CouponExpired()

    redemption.is_used = True
    redemption.used_at = now
    if order_id:
        redemption.order_id = order_id
    db.commit()
    db.refresh(redemption)

    logger.info(
        "reward coupon used",
        extra={"redemption_id": str(redemption.id), "used_by": ctx.user_id, "order_id": order_id},
    )
    return serialize_redemption(redemption, reward, restaurant.name if restaurant else "")


# ============================================================
# ADMIN - maintenance
# ============================================================
def count_expired_unused_coupons(db: Session) -> int:
    now = utcnow()
    return (
        db.query(RewardRedemption)
        .filter(RewardRedemption.is_deleted.is_(False))
        .filter(RewardRedemption.is_used.is_(False))
        .filter(RewardRedemption.expiry_date.isnot(None))
        .filter(RewardRedemption.expiry_date < now)
        .count()
    )
