from datetime import datetime
from typing import Optional

from uuid import UUID

from sevenblue_loyalty.schemas.base import CamelModel


class ReferralOut(CamelModel):
    id: UUID
    referrer_id: str
    referrer_name: Optional[str] = None

    referred_user_id: str
    referred_user_name: Optional[str] = None

    points_awarded: int
    status: str

    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ReferralRegister(CamelModel):
    code: str
    new_user_id: str
    new_user_name: Optional[str] = None
    new_user_email: Optional[str] = None


class ReferralRegisterOut(CamelModel):
    success: bool
    reason: Optional[str] = None
    referral: Optional[ReferralOut] = None


class ReferralLinkOut(CamelModel):
    code: str
    url: str


class TopReferrerOut(CamelModel):
    user_id: str
    user_name: str
    referral_count: int
    total_points_earned: int
    joined_loyalty_at: Optional[datetime] = None
