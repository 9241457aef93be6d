from fastapi import HTTPException


class LoyaltyError(HTTPException):
    """Base for every loyalty failure surfaced to API callers.

    Subclasses pin an HTTP status and a stable error code; the message is the
    human readable reason returned as ``detail``.
    """

    status_code = 400
    code = "LOYALTY_ERROR"
    message = "Loyalty operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(status_code=self.status_code, detail=message or self.message)


# ------------------------------------------------------------
# generic
# ------------------------------------------------------------
class ValidationFailed(LoyaltyError):
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class NotFound(LoyaltyError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class Forbidden(LoyaltyError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You are not allowed to perform this action"


class Unauthenticated(LoyaltyError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Missing user context"


class Conflict(LoyaltyError):
    status_code = 409
    code = "CONFLICT"
    message = "The operation conflicted with a concurrent update, please retry"


class RestaurantNotFound(NotFound):
    code = "RESTAURANT_NOT_FOUND"
    message = "Restaurant not found"


# ------------------------------------------------------------
# loyalty codes
# ------------------------------------------------------------
class CodeNotFound(NotFound):
    code = "CODE_NOT_FOUND"
    message = "Invalid code"


class CodeInactive(LoyaltyError):
    code = "CODE_INACTIVE"
    message = "This code is no longer active"


class CodeExpired(LoyaltyError):
    code = "CODE_EXPIRED"
    message = "This code has expired"


class CodeExhausted(LoyaltyError):
    code = "CODE_EXHAUSTED"
    message = "This code has reached its maximum number of uses"


class RestaurantMismatch(LoyaltyError):
    code = "RESTAURANT_MISMATCH"
    message = "This code is not valid for this restaurant"


class CodeAlreadyRedeemedByCustomer(LoyaltyError):
    code = "CODE_ALREADY_REDEEMED"
    message = "You have already used this code"


# ------------------------------------------------------------
# rewards
# ------------------------------------------------------------
class RewardNotFound(NotFound):
    code = "REWARD_NOT_FOUND"
    message = "Reward not found"


class RewardInactive(LoyaltyError):
    code = "REWARD_INACTIVE"
    message = "This reward is not active"


class RewardOutOfWindow(LoyaltyError):
    code = "REWARD_OUT_OF_WINDOW"
    message = "This reward is not available at this time"


class RewardExhausted(LoyaltyError):
    code = "REWARD_EXHAUSTED"
    message = "This reward has reached its maximum redemptions"


class InsufficientPoints(LoyaltyError):
    code = "INSUFFICIENT_POINTS"
    message = "Insufficient points"


class RedemptionNotFound(NotFound):
    code = "REDEMPTION_NOT_FOUND"
    message = "Redemption not found"


class CouponAlreadyUsed(LoyaltyError):
    code = "COUPON_ALREADY_USED"
    message = "This coupon has already been used"


class CouponExpired(LoyaltyError):
    code = "COUPON_EXPIRED"
    message = "This coupon has expired"
