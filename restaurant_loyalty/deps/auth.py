from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header

from restaurant_loyalty.errors import Forbidden, Unauthenticated, ValidationFailed


ADMIN = "ADMIN"
OWNER = "OWNER"
CUSTOMER = "CUSTOMER"
EMPLOYEE = "EMPLOYEE"
DELIVERY = "DELIVERY"

ROLES = (ADMIN, OWNER, CUSTOMER, EMPLOYEE, DELIVERY)

# role names issued by the identity provider
_ROLE_ALIASES = {
    "RESTAURANTOWNER": OWNER,
    "RESTAURANT_OWNER": OWNER,
}


@dataclass(frozen=True)
class AuthContext:
    """Caller identity forwarded by the gateway."""

    user_id: str
    role: str
    # employees act on behalf of one restaurant
    restaurant_id: UUID | None = None


def _normalize_role(role: str) -> str:
    key = role.strip().upper().replace("-", "_")
    return _ROLE_ALIASES.get(key, key)


def get_optional_auth_context(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
    x_restaurant_id: str | None = Header(default=None, alias="X-Restaurant-Id"),
) -> AuthContext | None:
    if not x_user_id or not x_user_id.strip():
        return None
    if not x_user_role or not x_user_role.strip():
        return None

    role = _normalize_role(x_user_role)
    if role not in ROLES:
        raise Forbidden(f"Unknown role: {x_user_role}")

    restaurant_id = None
    if x_restaurant_id:
        try:
            restaurant_id = UUID(x_restaurant_id)
        except ValueError:
            raise ValidationFailed("X-Restaurant-Id must be a UUID")

    return AuthContext(user_id=x_user_id.strip(), role=role, restaurant_id=restaurant_id)


def get_auth_context(ctx: AuthContext | None = Depends(get_optional_auth_context)) -> AuthContext:
    if ctx is None:
        raise Unauthenticated("Missing user context. Provide X-User-Id and X-User-Role headers.")
    return ctx


def require_roles(*roles: str):
    allowed = set(roles)

    def _dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if ctx.role not in allowed:
            raise Forbidden(f"This action requires one of the roles: {', '.join(sorted(allowed))}")
        return ctx

    return _dependency
