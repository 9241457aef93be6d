from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restaurant_loyalty.db import get_db
from restaurant_loyalty.deps.auth import EMPLOYEE, OWNER, AuthContext, require_roles
from restaurant_loyalty.schemas.reward import RewardCreate, RewardOut, RewardUpdate
from restaurant_loyalty.schemas.reward_redemption import RewardRedemptionOut, UseCouponRequest
from restaurant_loyalty.services.redemption_service import use_redemption
from restaurant_loyalty.services.reward_service import (
    create_reward,
    delete_reward,
    list_owner_rewards,
    update_reward,
)


router = APIRouter(prefix="/Loyalty/owner", tags=["loyalty-owner"])


@router.post("/rewards", response_model=RewardOut)
def owner_create_reward(
    payload: RewardCreate,
    ctx: AuthContext = Depends(require_roles(OWNER)),
    db: Session = Depends(get_db),
):
    return create_reward(db, payload, ctx.user_id)


@router.put("/rewards/{reward_id}", response_model=RewardOut)
def owner_update_reward(
    reward_id: UUID,
    payload: RewardUpdate,
    ctx: AuthContext = Depends(require_roles(OWNER)),
    db: Session = Depends(get_db),
):
    return update_reward(db, reward_id, payload, ctx.user_id)


@router.delete("/rewards/{reward_id}")
def owner_delete_reward(
    reward_id: UUID,
    ctx: AuthContext = Depends(require_roles(OWNER)),
    db: Session = Depends(get_db),
):
    delete_reward(db, reward_id, ctx.user_id)
    return {"deleted": True}


@router.get("/restaurants/{restaurant_id}/rewards", response_model=list[RewardOut])
def owner_list_rewards(
    restaurant_id: UUID,
    ctx: AuthContext = Depends(require_roles(OWNER)),
    db: Session = Depends(get_db),
):
    return list_owner_rewards(db, restaurant_id, ctx.user_id)


@router.patch("/redemptions/{coupon_code}/use", response_model=RewardRedemptionOut)
def owner_use_coupon(
    coupon_code: str,
    payload: UseCouponRequest | None = None,
    ctx: AuthContext = Depends(require_roles(OWNER, EMPLOYEE)),
    db: Session = Depends(get_db),
):
    return use_redemption(db, coupon_code, ctx, payload.orderId if payload else None)
