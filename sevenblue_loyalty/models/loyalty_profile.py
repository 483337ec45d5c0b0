from sqlalchemy import CheckConstraint, Column, Integer, String, TIMESTAMP
from sqlalchemy.sql import func

from sevenblue_loyalty.db import Base
from sevenblue_loyalty.timeutils import utcnow


class LoyaltyProfile(Base):
    __tablename__ = "loyalty_profiles"

    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_loyalty_profiles_total_points"),
        CheckConstraint("total_points_earned >= 0", name="ck_loyalty_profiles_total_points_earned"),
        CheckConstraint("total_points_redeemed >= 0", name="ck_loyalty_profiles_total_points_redeemed"),
        CheckConstraint("referral_count >= 0", name="ck_loyalty_profiles_referral_count"),
    )

    # opaque id from the identity provider
    user_id = Column(String(128), primary_key=True)

    display_name = Column(String(200))
    email = Column(String(320))

    total_points = Column(Integer, nullable=False, default=0)
    total_points_earned = Column(Integer, nullable=False, default=0)
    total_points_redeemed = Column(Integer, nullable=False, default=0)

    current_tier = Column(String(1), nullable=False, default="C")  # C / B / A

    referral_code = Column(String(20), nullable=False, unique=True)
    referral_count = Column(Integer, nullable=False, default=0)

    last_daily_login_claim = Column(TIMESTAMP, nullable=True)
    last_points_expiry_notification = Column(TIMESTAMP, nullable=True)

    joined_loyalty_at = Column(TIMESTAMP, nullable=False, default=utcnow, server_default=func.now())

    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)
