from datetime import datetime
from typing import Optional

from uuid import UUID

from sevenblue_loyalty.schemas.base import CamelModel


class NotificationOut(CamelModel):
    id: UUID
    user_id: str
    type: str

    title_ar: str
    title_en: str
    message_ar: str
    message_en: str

    action_url: Optional[str] = None
    is_read: bool
    created_at: Optional[datetime] = None
