from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restaurant_loyalty.db import get_db
from restaurant_loyalty.deps.auth import ADMIN, AuthContext, require_roles
from restaurant_loyalty.schemas.loyalty_code import LoyaltyCodeCreate, LoyaltyCodeOut
from restaurant_loyalty.services.code_service import (
    deactivate_code,
    generate_loyalty_code,
    get_loyalty_code,
    list_loyalty_codes,
)
from restaurant_loyalty.services.redemption_service import count_expired_unused_coupons


router = APIRouter(prefix="/Loyalty/admin", tags=["loyalty-admin"])


@router.post("/codes", response_model=LoyaltyCodeOut)
def create_loyalty_code(
    payload: LoyaltyCodeCreate,
    ctx: AuthContext = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    return generate_loyalty_code(db, payload, ctx.user_id)


@router.get("/codes", response_model=list[LoyaltyCodeOut])
def read_loyalty_codes(
    ctx: AuthContext = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    return list_loyalty_codes(db)


@router.get("/codes/{code_id}", response_model=LoyaltyCodeOut)
def read_loyalty_code(
    code_id: UUID,
    ctx: AuthContext = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    return get_loyalty_code(db, code_id)


@router.patch("/codes/{code_id}/deactivate", response_model=LoyaltyCodeOut)
def deactivate_loyalty_code(
    code_id: UUID,
    ctx: AuthContext = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    return deactivate_code(db, code_id)


@router.get("/redemptions/expired")
def admin_count_expired_coupons(
    ctx: AuthContext = Depends(require_roles(ADMIN)),
    db: Session = Depends(get_db),
):
    return {"expired": count_expired_unused_coupons(db)}
