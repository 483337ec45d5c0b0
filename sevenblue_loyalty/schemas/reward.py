from datetime import datetime
from typing import Literal, Optional

from uuid import UUID

from pydantic import Field

from sevenblue_loyalty.schemas.base import CamelModel


RewardCategory = Literal["discount", "product", "voucher", "experience"]


class RewardCreate(CamelModel):
    name_ar: str = Field(min_length=1, max_length=200)
    name_en: str = Field(min_length=1, max_length=200)
    description_ar: Optional[str] = None
    description_en: Optional[str] = None
    image_url: Optional[str] = None
    points_required: int = Field(gt=0)
    quantity: int = Field(default=0, ge=0)
    category: RewardCategory = "discount"
    value: Optional[float] = Field(default=None, ge=0)
    is_active: bool = True


class RewardUpdate(CamelModel):
    name_ar: Optional[str] = Field(default=None, min_length=1, max_length=200)
    name_en: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description_ar: Optional[str] = None
    description_en: Optional[str] = None
    image_url: Optional[str] = None
    points_required: Optional[int] = Field(default=None, gt=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    category: Optional[RewardCategory] = None
    value: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class RewardOut(CamelModel):
    id: UUID
    name_ar: str
    name_en: str
    description_ar: Optional[str] = None
    description_en: Optional[str] = None
    image_url: Optional[str] = None
    points_required: int
    quantity: int
    category: str
    value: Optional[float] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
