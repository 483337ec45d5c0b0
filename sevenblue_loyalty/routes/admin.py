from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sevenblue_loyalty.db import get_db
from sevenblue_loyalty.deps.identity import require_admin
from sevenblue_loyalty.schemas.loyalty import (
    AdminPointsAdjust,
    LoyaltySnapshotOut,
    PointTransactionOut,
    PurchasePoints,
    PurchasePointsOut,
)
from sevenblue_loyalty.schemas.redemption import RedemptionOut, RedemptionStatusUpdate
from sevenblue_loyalty.schemas.referral import ReferralOut, TopReferrerOut
from sevenblue_loyalty.services import loyalty_service, redemption_service, referral_service


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ─── redemptions ─────────────────────────────────────────────────

@router.get("/redemptions", response_model=list[RedemptionOut])
def list_redemptions(
    status: str | None = None,
    user_id: str | None = Query(default=None, alias="userId"),
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return redemption_service.list_redemptions(db, status=status, user_id=user_id, limit=limit, offset=offset)


@router.patch("/redemptions/{redemption_id}", response_model=RedemptionOut)
def update_redemption(redemption_id: str, payload: RedemptionStatusUpdate, db: Session = Depends(get_db)):
    redemption = redemption_service.update_redemption_status(
        db, redemption_id, payload.status, payload.admin_notes
    )
    db.commit()
    db.refresh(redemption)
    return redemption


# ─── referrals ───────────────────────────────────────────────────

@router.get("/referrals", response_model=list[ReferralOut])
def list_referrals(
    referrer_id: str | None = Query(default=None, alias="referrerId"),
    limit: int = 100,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    return referral_service.list_referrals(db, referrer_id=referrer_id, limit=limit, offset=offset)


@router.get("/referrals/top", response_model=list[TopReferrerOut])
def list_top_referrers(limit: int = 10, db: Session = Depends(get_db)):
    return referral_service.list_top_referrers(db, limit=limit)


# ─── users / orders ──────────────────────────────────────────────

@router.post("/users/{user_id}/points", response_model=PointTransactionOut)
def adjust_points(user_id: str, payload: AdminPointsAdjust, db: Session = Depends(get_db)):
    entry = loyalty_service.admin_adjust_points(db, user_id, payload.delta, payload.note)
    db.commit()
    db.refresh(entry)
    return entry


@router.get("/users/{user_id}/loyalty", response_model=LoyaltySnapshotOut)
def read_user_loyalty(user_id: str, lang: str | None = None, db: Session = Depends(get_db)):
    return loyalty_service.get_loyalty_snapshot(db, user_id, lang=lang)


@router.post("/orders/{order_id}/points", response_model=PurchasePointsOut)
def record_order_points(order_id: str, payload: PurchasePoints, db: Session = Depends(get_db)):
    entry = loyalty_service.record_purchase_points(db, payload.user_id, payload.order_total, order_id)
    db.commit()
    if entry is not None:
        db.refresh(entry)
    return {"credited": entry is not None, "transaction": entry}
