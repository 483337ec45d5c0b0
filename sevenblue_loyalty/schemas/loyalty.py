from datetime import datetime
from typing import Optional

from uuid import UUID

from sevenblue_loyalty.schemas.base import CamelModel
from sevenblue_loyalty.schemas.referral import ReferralOut


class LoyaltyProfileOut(CamelModel):
    user_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None

    total_points: int
    total_points_earned: int
    total_points_redeemed: int

    current_tier: str

    referral_code: str
    referral_count: int

    last_daily_login_claim: Optional[datetime] = None
    joined_loyalty_at: Optional[datetime] = None


class PointTransactionOut(CamelModel):
    id: UUID
    user_id: str
    sequence: int

    type: str
    points: int
    balance_after: int

    description_ar: Optional[str] = None
    description_en: Optional[str] = None
    reference_id: Optional[str] = None

    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class LoyaltySnapshotOut(CamelModel):
    profile: LoyaltyProfileOut
    tier: dict
    daily_bonus_claimable: bool
    transactions: list[PointTransactionOut]
    referrals: list[ReferralOut]


class InitOut(CamelModel):
    profile: LoyaltyProfileOut
    signup_bonus_credited: bool


class DailyBonusOut(CamelModel):
    claimed: bool
    new_balance: int


class ExpiryCheckOut(CamelModel):
    expiring_points: int


class AdminPointsAdjust(CamelModel):
    delta: int
    note: Optional[str] = None


class PurchasePoints(CamelModel):
    user_id: str
    order_total: float


class PurchasePointsOut(CamelModel):
    credited: bool
    transaction: Optional[PointTransactionOut] = None
