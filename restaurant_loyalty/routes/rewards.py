from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restaurant_loyalty.db import get_db
from restaurant_loyalty.deps.auth import CUSTOMER, AuthContext, get_optional_auth_context
from restaurant_loyalty.schemas.reward import RewardOut
from restaurant_loyalty.services.reward_service import get_reward, list_restaurant_rewards


router = APIRouter(prefix="/Loyalty", tags=["loyalty-rewards"])


def _customer_id(ctx: AuthContext | None) -> str | None:
    # only customers hold balances; other roles browse like anonymous users
    if ctx is None or ctx.role != CUSTOMER:
        return None
    return ctx.user_id


@router.get("/restaurants/{restaurant_id}/rewards", response_model=list[RewardOut])
def restaurant_rewards(
    restaurant_id: UUID,
    ctx: AuthContext | None = Depends(get_optional_auth_context),
    db: Session = Depends(get_db),
):
    return list_restaurant_rewards(db, restaurant_id, _customer_id(ctx))


@router.get("/rewards/{reward_id}", response_model=RewardOut)
def reward_detail(
    reward_id: UUID,
    ctx: AuthContext | None = Depends(get_optional_auth_context),
    db: Session = Depends(get_db),
):
    return get_reward(db, reward_id, _customer_id(ctx))
