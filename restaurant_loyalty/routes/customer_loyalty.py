from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restaurant_loyalty.db import get_db
from restaurant_loyalty.deps.auth import CUSTOMER, AuthContext, require_roles
from restaurant_loyalty.schemas.loyalty_code import RedeemCodeRequest
from restaurant_loyalty.schemas.loyalty_point import CustomerLoyaltyBalanceOut, LoyaltyPointOut
from restaurant_loyalty.schemas.reward_redemption import RedeemRewardRequest, RewardRedemptionOut
from restaurant_loyalty.services.code_service import redeem_loyalty_code
from restaurant_loyalty.services.ledger_service import get_customer_loyalty_balance, get_customer_point_history
from restaurant_loyalty.services.redemption_service import get_redemption, list_customer_redemptions, redeem_reward


router = APIRouter(prefix="/Loyalty/customer", tags=["loyalty-customer"])


@router.post("/redeem-code", response_model=LoyaltyPointOut)
def customer_redeem_code(
    payload: RedeemCodeRequest,
    ctx: AuthContext = Depends(require_roles(CUSTOMER)),
    db: Session = Depends(get_db),
):
    return redeem_loyalty_code(db, payload.code, ctx.user_id, payload.restaurantId)


@router.get("/balance", response_model=list[CustomerLoyaltyBalanceOut])
def customer_balance(
    ctx: AuthContext = Depends(require_roles(CUSTOMER)),
    db: Session = Depends(get_db),
):
    return get_customer_loyalty_balance(db, ctx.user_id)


@router.get("/history", response_model=list[LoyaltyPointOut])
def customer_history(
    restaurantId: UUID | None = None,
    ctx: AuthContext = Depends(require_roles(CUSTOMER)),
    db: Session = Depends(get_db),
):
    return get_customer_point_history(db, ctx.user_id, restaurantId)


@router.post("/redeem-reward", response_model=RewardRedemptionOut)
def customer_redeem_reward(
    payload: RedeemRewardRequest,
    ctx: AuthContext = Depends(require_roles(CUSTOMER)),
    db: Session = Depends(get_db),
):
    return redeem_reward(db, payload.rewardId, ctx.user_id)


@router.get("/redemptions", response_model=list[RewardRedemptionOut])
def customer_redemptions(
    ctx: AuthContext = Depends(require_roles(CUSTOMER)),
    db: Session = Depends(get_db),
):
    return list_customer_redemptions(db, ctx.user_id)


@router.get("/redemptions/{redemption_id}", response_model=RewardRedemptionOut)
def customer_redemption(
    redemption_id: UUID,
    ctx: AuthContext = Depends(require_roles(CUSTOMER)),
    db: Session = Depends(get_db),
):
    return get_redemption(db, redemption_id, ctx.user_id)
