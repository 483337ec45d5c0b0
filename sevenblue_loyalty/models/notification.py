import uuid

from sqlalchemy import Boolean, Column, String, TIMESTAMP, Uuid
from sqlalchemy.sql import func

from sevenblue_loyalty.db import Base
from sevenblue_loyalty.timeutils import utcnow


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(128), nullable=False, index=True)

    type = Column(String(30), nullable=False)

    title_ar = Column(String(200), nullable=False)
    title_en = Column(String(200), nullable=False)
    message_ar = Column(String(1000), nullable=False)
    message_en = Column(String(1000), nullable=False)

    action_url = Column(String(500))

    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow, server_default=func.now())
