import uuid
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sevenblue_loyalty.db import Base
from sevenblue_loyalty.timeutils import utcnow


class Redemption(Base):
    __tablename__ = "redemptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(128), ForeignKey("loyalty_profiles.user_id"), nullable=False, index=True)
    user_name = Column(String(200))
    user_email = Column(String(320))

    # no FK: rewards can be hard-deleted, the snapshot below keeps history readable
    reward_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    reward_name_ar = Column(String(200), nullable=False)
    reward_name_en = Column(String(200), nullable=False)
    reward_image_url = Column(String(1000))

    points_spent = Column(Integer, nullable=False)
    points_balance_after = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default="pending")
    # pending | fulfilled | cancelled

    admin_notes = Column(String(2000))
    refunded = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)
    fulfilled_at = Column(TIMESTAMP, nullable=True)
    cancelled_at = Column(TIMESTAMP, nullable=True)
