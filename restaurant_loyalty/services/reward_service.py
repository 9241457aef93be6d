import logging

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import not_deleted
from restaurant_loyalty.errors import (
    Conflict,
    Forbidden,
    RestaurantNotFound,
    RewardExhausted,
    RewardInactive,
    RewardNotFound,
    RewardOutOfWindow,
    ValidationFailed,
)
from restaurant_loyalty.models.restaurant import Restaurant
from restaurant_loyalty.models.reward import Reward
from restaurant_loyalty.services.ledger_service import get_available_points


logger = logging.getLogger(__name__)


# ============================================================
# Eligibility
# ============================================================
def check_reward_redeemable(reward: Reward, now=None) -> None:
    """Raise the first rule the reward fails, ignoring the customer's balance."""
    now = now or utcnow()

    if not reward.is_active:
        raise RewardInactive()
    if reward.start_date is not None and now < reward.start_date:
        raise RewardOutOfWindow("This reward is not available yet")
    if reward.end_date is not None and now > reward.end_date:
        raise RewardOutOfWindow("This reward has expired")
    if reward.max_redemptions is not None and reward.current_redemptions >= reward.max_redemptions:
        raise RewardExhausted()


def is_reward_redeemable(reward: Reward, now=None) -> bool:
    try:
        check_reward_redeemable(reward, now)
    except (RewardInactive, RewardOutOfWindow, RewardExhausted):
        return False
    return True


def can_redeem(reward: Reward, available_points: int, now=None) -> bool:
    return is_reward_redeemable(reward, now) and available_points >= reward.points_required


def serialize_reward(reward: Reward, restaurant_name: str, redeemable: bool = False) -> dict:
    return {
        "id": reward.id,
        "restaurant_id": reward.restaurant_id,
        "restaurant_name": restaurant_name,
        "name": reward.name,
        "description": reward.description,
        "points_required": reward.points_required,
        "discount_amount": reward.discount_amount,
        "discount_percentage": reward.discount_percentage,
        "image_url": reward.image_url,
        "is_active": reward.is_active,
        "start_date": reward.start_date,
        "end_date": reward.end_date,
        "max_redemptions": reward.max_redemptions,
        "current_redemptions": reward.current_redemptions,
        "can_redeem": redeemable,
        "is_redeemable": is_reward_redeemable(reward),
        "created_at": reward.created_at,
    }


# ============================================================
# Lookups
# ============================================================
def _get_restaurant(db: Session, restaurant_id) -> Restaurant:
    restaurant = (
        not_deleted(db.query(Restaurant), Restaurant)
        .filter(Restaurant.id == restaurant_id)
        .first()
    )
    if not restaurant:
        raise RestaurantNotFound()
    return restaurant


def get_owned_restaurant(db: Session, restaurant_id, owner_id: str) -> Restaurant:
    restaurant = _get_restaurant(db, restaurant_id)
    if restaurant.owner_id != owner_id:
        raise Forbidden("You don't have permission to manage this restaurant")
    return restaurant


def _get_reward(db: Session, reward_id, *, for_update: bool = False) -> Reward:
    q = not_deleted(db.query(Reward), Reward).filter(Reward.id == reward_id)
    if for_update:
        q = q.with_for_update()
    reward = q.first()
    if not reward:
        raise RewardNotFound()
    return reward


def _get_owned_reward(db: Session, reward_id, owner_id: str) -> tuple[Reward, Restaurant]:
    reward = _get_reward(db, reward_id, for_update=True)
    restaurant = get_owned_restaurant(db, reward.restaurant_id, owner_id)
    return reward, restaurant


def _commit_reward_change(db: Session, reward_id) -> None:
    # a redemption that committed since the row was read bumps version_id
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("reward changed concurrently", extra={"reward_id": str(reward_id)})
        raise Conflict("This reward was changed by another request, please retry")


# ============================================================
# OWNER - catalogue management
# ============================================================
def create_reward(db: Session, payload, owner_id: str) -> dict:
    restaurant = get_owned_restaurant(db, payload.restaurant_id, owner_id)

    reward = Reward(
        restaurant_id=restaurant.id,
        name=payload.name,
        description=payload.description,
        points_required=payload.points_required,
        discount_amount=payload.discount_amount,
        discount_percentage=payload.discount_percentage,
        image_url=payload.image_url,
        is_active=True,
        start_date=payload.start_date,
        end_date=payload.end_date,
        max_redemptions=payload.max_redemptions,
        current_redemptions=0,
    )
    db.add(reward)
    db.commit()
    db.refresh(reward)

    logger.info(
        "reward created",
        extra={"reward_id": str(reward.id), "restaurant_id": str(restaurant.id), "owner_id": owner_id},
    )
    return serialize_reward(reward, restaurant.name)


def update_reward(db: Session, reward_id, payload, owner_id: str) -> dict:
    reward, restaurant = _get_owned_reward(db, reward_id, owner_id)

    if payload.max_redemptions is not None and payload.max_redemptions < reward.current_redemptions:
        raise ValidationFailed(
            f"max_redemptions cannot be lower than current redemptions ({reward.current_redemptions})"
        )

    data = payload.model_dump()
    for k, v in data.items():
        setattr(reward, k, v)

    _commit_reward_change(db, reward_id)
    db.refresh(reward)

    logger.info("reward updated", extra={"reward_id": str(reward.id), "owner_id": owner_id})
    return serialize_reward(reward, restaurant.name)


def delete_reward(db: Session, reward_id, owner_id: str) -> None:
    reward, _ = _get_owned_reward(db, reward_id, owner_id)

    reward.is_deleted = True
    reward.deleted_at = utcnow()
    reward.is_active = False
    _commit_reward_change(db, reward_id)

    logger.info("reward deleted", extra={"reward_id": str(reward.id), "owner_id": owner_id})


def list_owner_rewards(db: Session, restaurant_id, owner_id: str) -> list[dict]:
    restaurant = get_owned_restaurant(db, restaurant_id, owner_id)
    rewards = (
        not_deleted(db.query(Reward), Reward)
        .filter(Reward.restaurant_id == restaurant.id)
        .order_by(Reward.created_at.desc())
        .all()
    )
    return [serialize_reward(r, restaurant.name) for r in rewards]


# ============================================================
# PUBLIC / CUSTOMER - catalogue browsing
# ============================================================
def list_restaurant_rewards(db: Session, restaurant_id, customer_id: str | None = None) -> list[dict]:
    restaurant = _get_restaurant(db, restaurant_id)

    rewards = (
        not_deleted(db.query(Reward), Reward)
        .filter(Reward.restaurant_id == restaurant.id)
        .filter(Reward.is_active.is_(True))
        .order_by(Reward.points_required.asc(), Reward.name.asc())
        .all()
    )

    now = utcnow()
    # never cached: balance and counters move between requests
    available = get_available_points(db, customer_id, restaurant.id, now=now) if customer_id else 0

    return [
        serialize_reward(r, restaurant.name, bool(customer_id) and can_redeem(r, available, now))
        for r in rewards
    ]


def get_reward(db: Session, reward_id, customer_id: str | None = None) -> dict:
    reward = _get_reward(db, reward_id)
    restaurant = _get_restaurant(db, reward.restaurant_id)

    now = utcnow()
    redeemable = False
    if customer_id:
        available = get_available_points(db, customer_id, reward.restaurant_id, now=now)
        redeemable = can_redeem(reward, available, now)

    return serialize_reward(reward, restaurant.name, redeemable)
