import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, TIMESTAMP, Uuid
from sqlalchemy.sql import func

from sevenblue_loyalty.db import Base
from sevenblue_loyalty.timeutils import utcnow


class Referral(Base):
    __tablename__ = "referrals"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    referrer_id = Column(String(128), ForeignKey("loyalty_profiles.user_id"), nullable=False, index=True)
    referrer_name = Column(String(200))

    # a user can be referred exactly once
    referred_user_id = Column(String(128), nullable=False, unique=True)
    referred_user_name = Column(String(200))
    referred_user_email = Column(String(320))

    points_awarded = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default="completed")

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow, server_default=func.now())
    completed_at = Column(TIMESTAMP, nullable=True)
