from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from sevenblue_loyalty.db import get_db
from sevenblue_loyalty.deps.identity import Identity, get_current_identity
from sevenblue_loyalty.schemas.referral import ReferralRegister, ReferralRegisterOut
from sevenblue_loyalty.services.referral_service import register_referral


router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.post("/register", response_model=ReferralRegisterOut)
def register(
    payload: ReferralRegister,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    # only the signed-in new user can attach themselves to a referrer
    if payload.new_user_id != identity.user_id:
        raise HTTPException(status_code=403, detail="newUserId does not match the signed-in user")

    result = register_referral(
        db,
        payload.code,
        identity.user_id,
        payload.new_user_name or identity.display_name,
        payload.new_user_email or identity.email,
    )
    if result.success:
        db.commit()
        db.refresh(result.referral)
    return {"success": result.success, "reason": result.reason, "referral": result.referral}
