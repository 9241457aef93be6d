import logging
import uuid
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restaurant_loyalty import config
from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import not_deleted
from restaurant_loyalty.errors import (
    CodeAlreadyRedeemedByCustomer,
    CodeExhausted,
    CodeExpired,
    CodeInactive,
    CodeNotFound,
    Conflict,
    RestaurantMismatch,
    RestaurantNotFound,
)
from restaurant_loyalty.models.loyalty_code import LoyaltyCode
from restaurant_loyalty.models.loyalty_code_usage import LoyaltyCodeUsage
from restaurant_loyalty.models.loyalty_point import EARNED
from restaurant_loyalty.models.restaurant import Restaurant
from restaurant_loyalty.services.ledger_service import append_entry, restaurant_name, serialize_entry


logger = logging.getLogger(__name__)

CODE_PREFIX = "LP-"


def generate_token(prefix: str, length: int) -> str:
    return f"{prefix}{uuid.uuid4().hex[:length].upper()}"


def _generate_unique_code(db: Session) -> str:
    attempts = max(1, config.CODE_GENERATION_ATTEMPTS)
    for _ in range(attempts):
        candidate = generate_token(CODE_PREFIX, 8)
        exists = db.query(LoyaltyCode.id).filter(LoyaltyCode.code == candidate).first()
        if not exists:
            return candidate
    raise Conflict("Could not generate a unique loyalty code, please retry")


def _get_code(db: Session, code_id) -> LoyaltyCode:
    code = not_deleted(db.query(LoyaltyCode), LoyaltyCode).filter(LoyaltyCode.id == code_id).first()
    if not code:
        raise CodeNotFound("Code not found")
    return code


# ============================================================
# ADMIN - issue / inspect / deactivate
# ============================================================
def generate_loyalty_code(db: Session, payload, admin_id: str) -> LoyaltyCode:
    if payload.restaurant_id is not None:
        restaurant = (
            not_deleted(db.query(Restaurant), Restaurant)
            .filter(Restaurant.id == payload.restaurant_id)
            .first()
        )
        if not restaurant:
            raise RestaurantNotFound()

    loyalty_code = LoyaltyCode(
        code=_generate_unique_code(db),
        point_value=payload.point_value,
        description=payload.description,
        created_by_admin_id=admin_id,
        max_uses=payload.max_uses,
        expiry_date=payload.expiry_date,
        restaurant_id=payload.restaurant_id,
        is_active=True,
        current_uses=0,
    )
    db.add(loyalty_code)
    db.commit()
    db.refresh(loyalty_code)

    logger.info(
        "loyalty code generated",
        extra={
            "code_id": str(loyalty_code.id),
            "point_value": loyalty_code.point_value,
            "max_uses": loyalty_code.max_uses,
            "restaurant_id": str(loyalty_code.restaurant_id) if loyalty_code.restaurant_id else None,
            "admin_id": admin_id,
        },
    )
    return loyalty_code


def list_loyalty_codes(db: Session) -> list[LoyaltyCode]:
    return (
        not_deleted(db.query(LoyaltyCode), LoyaltyCode)
        .order_by(LoyaltyCode.created_at.desc())
        .all()
    )


def get_loyalty_code(db: Session, code_id) -> LoyaltyCode:
    return _get_code(db, code_id)


def deactivate_code(db: Session, code_id) -> LoyaltyCode:
    code = _get_code(db, code_id)
    if code.is_active:
        code.is_active = False
        db.commit()
        db.refresh(code)
        logger.info("loyalty code deactivated", extra={"code_id": str(code.id)})
    return code


# ============================================================
# CUSTOMER - redeem
# ============================================================
def redeem_loyalty_code(db: Session, code: str, customer_id: str, restaurant_id=None) -> dict:
    """
    Credit the code's points to the customer.

    Checks run in a fixed order so each failure has its own error:
    unknown, inactive, expired, exhausted, wrong restaurant, already used by
    this customer. The code row stays locked until commit.
    """
    normalized = (code or "").strip().upper()

    loyalty_code = (
        not_deleted(db.query(LoyaltyCode), LoyaltyCode)
        .filter(LoyaltyCode.code == normalized)
        .with_for_update()
        .first()
    )
    if not loyalty_code:
        raise CodeNotFound()

    now = utcnow()

    if not loyalty_code.is_active:
        raise CodeInactive()
    if loyalty_code.expiry_date is not None and loyalty_code.expiry_date < now:
        raise CodeExpired()
    if loyalty_code.max_uses is not None and loyalty_code.current_uses >= loyalty_code.max_uses:
        raise CodeExhausted()
    if (
        loyalty_code.restaurant_id is not None
        and restaurant_id is not None
        and restaurant_id != loyalty_code.restaurant_id
    ):
        raise RestaurantMismatch()

    already = (
        db.query(LoyaltyCodeUsage.id)
        .filter(LoyaltyCodeUsage.code_id == loyalty_code.id)
        .filter(LoyaltyCodeUsage.customer_id == customer_id)
        .first()
    )
    if already:
        raise CodeAlreadyRedeemedByCustomer()

    code_id = loyalty_code.id
    try:
        entry = append_entry(
            db,
            customer_id=customer_id,
            restaurant_id=loyalty_code.restaurant_id,
            points=loyalty_code.point_value,
            type=EARNED,
            description=f"Redeemed code: {loyalty_code.code}",
            expiry_date=now + timedelta(days=config.POINTS_EXPIRY_DAYS),
            at=now,
        )
        db.add(
            LoyaltyCodeUsage(
                code_id=loyalty_code.id,
                customer_id=customer_id,
                loyalty_point_id=entry.id,
                redeemed_at=now,
            )
        )

        loyalty_code.current_uses = (loyalty_code.current_uses or 0) + 1
        if loyalty_code.max_uses == 1:
            loyalty_code.is_used = True
            loyalty_code.used_by_customer_id = customer_id
            loyalty_code.used_at = now

        db.commit()
    except IntegrityError:
        db.rollback()
        # lost a race with a concurrent request from the same customer
        duplicate = (
            db.query(LoyaltyCodeUsage.id)
            .filter(LoyaltyCodeUsage.code_id == code_id)
            .filter(LoyaltyCodeUsage.customer_id == customer_id)
            .first()
        )
        logger.warning(
            "loyalty code redemption conflict",
            extra={"code_id": str(code_id), "customer_id": customer_id, "duplicate": bool(duplicate)},
        )
        if duplicate:
            raise CodeAlreadyRedeemedByCustomer()
        raise Conflict()

    db.refresh(entry)
    name = restaurant_name(db, entry.restaurant_id)

    logger.info(
        "loyalty code redeemed",
        extra={
            "code_id": str(code_id),
            "customer_id": customer_id,
            "points": entry.points,
            "restaurant_id": str(entry.restaurant_id) if entry.restaurant_id else None,
        },
    )
    return serialize_entry(entry, name)
