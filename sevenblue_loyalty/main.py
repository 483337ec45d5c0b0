import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from sevenblue_loyalty.config import get_settings
from sevenblue_loyalty.db import engine, Base

from sevenblue_loyalty.models.loyalty_profile import LoyaltyProfile
from sevenblue_loyalty.models.point_transaction import PointTransaction
from sevenblue_loyalty.models.reward import Reward
from sevenblue_loyalty.models.redemption import Redemption
from sevenblue_loyalty.models.referral import Referral
from sevenblue_loyalty.models.notification import Notification

from sevenblue_loyalty.routes.loyalty import router as loyalty_router
from sevenblue_loyalty.routes.referrals import router as referrals_router
from sevenblue_loyalty.routes.rewards import router as rewards_router
from sevenblue_loyalty.routes.rewards import admin_router as admin_rewards_router
from sevenblue_loyalty.routes.admin import router as admin_router


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Seven Blue Loyalty Engine")

# ─── CORS ─────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)


@app.exception_handler(OperationalError)
def storage_unavailable(request: Request, exc: OperationalError):
    logger.warning("storage unavailable", extra={"path": request.url.path})
    return JSONResponse(
        status_code=503,
        headers={"Retry-After": "1"},
        content={
            "detail": {
                "code": "STORAGE_UNAVAILABLE",
                "message": "Storage is temporarily unavailable, please retry",
                "messageAr": "الخدمة غير متاحة مؤقتا، حاول مرة أخرى",
            }
        },
    )


app.include_router(loyalty_router)
app.include_router(referrals_router)
app.include_router(rewards_router)
app.include_router(admin_rewards_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/")
def read_root():
    return {"message": "Seven Blue Loyalty Engine is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8001)
