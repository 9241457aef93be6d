import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from restaurant_loyalty.config import CORS_ORIGINS, LOG_LEVEL
from restaurant_loyalty.db import engine, Base
from restaurant_loyalty.errors import LoyaltyError

from restaurant_loyalty.models.restaurant import Restaurant
from restaurant_loyalty.models.loyalty_code import LoyaltyCode
from restaurant_loyalty.models.loyalty_code_usage import LoyaltyCodeUsage
from restaurant_loyalty.models.loyalty_point import LoyaltyPoint
from restaurant_loyalty.models.reward import Reward
from restaurant_loyalty.models.reward_redemption import RewardRedemption

from restaurant_loyalty.routes.admin_codes import router as admin_codes_router
from restaurant_loyalty.routes.customer_loyalty import router as customer_loyalty_router
from restaurant_loyalty.routes.owner_rewards import router as owner_rewards_router
from restaurant_loyalty.routes.rewards import router as rewards_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Restaurant Loyalty")

# ─── CORS ─────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Errors ───────────────────────────────────────────────────────
@app.exception_handler(LoyaltyError)
async def loyalty_error_handler(request: Request, exc: LoyaltyError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={
            "detail": f"{field}: {message}" if field else message,
            "code": "VALIDATION_ERROR",
            "errors": jsonable_encoder(errors, custom_encoder={Exception: str}),
        },
    )


@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)
    logger.info("restaurant loyalty service started")


app.include_router(admin_codes_router)
app.include_router(customer_loyalty_router)
app.include_router(owner_rewards_router)
app.include_router(rewards_router)


@app.get("/")
def read_root():
    return {"message": "Restaurant Loyalty is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8001, reload=True)
