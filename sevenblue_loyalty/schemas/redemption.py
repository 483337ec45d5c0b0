from datetime import datetime
from typing import Literal, Optional

from uuid import UUID

from sevenblue_loyalty.schemas.base import CamelModel


class RedeemRequest(CamelModel):
    reward_id: str


class RedemptionOut(CamelModel):
    id: UUID

    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    reward_id: UUID
    reward_name_ar: str
    reward_name_en: str
    reward_image_url: Optional[str] = None

    points_spent: int
    points_balance_after: int

    status: str
    admin_notes: Optional[str] = None
    refunded: bool = False

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class RedeemOut(CamelModel):
    success: bool
    new_balance: int
    redemption: RedemptionOut


class RedemptionStatusUpdate(CamelModel):
    status: Literal["pending", "fulfilled", "cancelled"]
    admin_notes: Optional[str] = None
