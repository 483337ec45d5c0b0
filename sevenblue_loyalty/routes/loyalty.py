from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sevenblue_loyalty.db import get_db
from sevenblue_loyalty.deps.identity import Identity, get_current_identity
from sevenblue_loyalty.schemas.loyalty import (
    DailyBonusOut,
    ExpiryCheckOut,
    InitOut,
    LoyaltySnapshotOut,
    PointTransactionOut,
)
from sevenblue_loyalty.schemas.notification import NotificationOut
from sevenblue_loyalty.schemas.redemption import RedeemOut, RedeemRequest, RedemptionOut
from sevenblue_loyalty.schemas.referral import ReferralLinkOut
from sevenblue_loyalty.services import ledger_service, loyalty_service, redemption_service
from sevenblue_loyalty.services.errors import ProfileNotFound
from sevenblue_loyalty.services.notification_service import list_notifications
from sevenblue_loyalty.services.referral_service import build_referral_url, generate_referral_code


router = APIRouter(prefix="/loyalty/me", tags=["loyalty"])


@router.post("/init", response_model=InitOut)
def init_loyalty(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    profile, credited = loyalty_service.initialize_loyalty(
        db, identity.user_id, identity.display_name, identity.email
    )
    db.commit()
    db.refresh(profile)
    return {"profile": profile, "signupBonusCredited": credited}


@router.get("", response_model=LoyaltySnapshotOut)
def read_snapshot(
    lang: str | None = None,
    transactions_limit: int = Query(default=20, alias="transactionsLimit"),
    referrals_limit: int = Query(default=20, alias="referralsLimit"),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return loyalty_service.get_loyalty_snapshot(
        db,
        identity.user_id,
        transactions_limit=transactions_limit,
        referrals_limit=referrals_limit,
        lang=lang,
    )


@router.get("/transactions", response_model=list[PointTransactionOut])
def read_transactions(
    type: str | None = None,
    limit: int = 50,
    offset: int = 0,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    if not loyalty_service.get_profile(db, identity.user_id):
        raise ProfileNotFound(userId=identity.user_id)
    return ledger_service.list_entries(db, identity.user_id, type=type, limit=limit, offset=offset)


@router.post("/daily-bonus", response_model=DailyBonusOut)
def claim_daily_bonus(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    claimed, balance = loyalty_service.claim_daily_bonus(db, identity.user_id)
    db.commit()
    return {"claimed": claimed, "newBalance": balance}


@router.post("/expiry-check", response_model=ExpiryCheckOut)
def check_expiring_points(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    expiring = loyalty_service.check_expiring_points(db, identity.user_id)
    db.commit()
    return {"expiringPoints": expiring}


@router.get("/redemptions", response_model=list[RedemptionOut])
def read_redemptions(
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return redemption_service.list_redemptions(
        db, status=status, user_id=identity.user_id, limit=limit, offset=offset
    )


@router.post("/redemptions", response_model=RedeemOut)
def redeem(
    payload: RedeemRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    result = redemption_service.redeem_reward(db, identity.user_id, payload.reward_id)
    db.commit()
    db.refresh(result.redemption)
    return {"success": True, "newBalance": result.new_balance, "redemption": result.redemption}


@router.get("/referral-link", response_model=ReferralLinkOut)
def read_referral_link(identity: Identity = Depends(get_current_identity)):
    code = generate_referral_code(identity.user_id)
    return {"code": code, "url": build_referral_url(code)}


@router.get("/notifications", response_model=list[NotificationOut])
def read_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = 50,
    offset: int = 0,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return list_notifications(db, identity.user_id, unread_only=unread_only, limit=limit, offset=offset)
