import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, String, TIMESTAMP, UniqueConstraint, Uuid, text
from sqlalchemy.sql import func

from sevenblue_loyalty.db import Base
from sevenblue_loyalty.timeutils import utcnow


class PointTransaction(Base):
    __tablename__ = "point_transactions"

    __table_args__ = (
        UniqueConstraint("user_id", "sequence", name="uq_point_transactions_user_sequence"),
        # one signup bonus per user
        Index(
            "uq_point_transactions_signup",
            "user_id",
            unique=True,
            postgresql_where=text("type = 'signup'"),
            sqlite_where=text("type = 'signup'"),
        ),
        # one purchase credit per order
        Index(
            "uq_point_transactions_purchase_reference",
            "user_id",
            "reference_id",
            unique=True,
            postgresql_where=text("type = 'purchase' AND reference_id IS NOT NULL"),
            sqlite_where=text("type = 'purchase' AND reference_id IS NOT NULL"),
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id = Column(String(128), ForeignKey("loyalty_profiles.user_id"), nullable=False, index=True)

    # per-user running order; balance_after is the running sum up to this entry
    sequence = Column(Integer, nullable=False)

    type = Column(String(30), nullable=False)
    # signup / daily_login / referral_signup / purchase / redeem / expired / admin_add / admin_remove

    points = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)

    description_ar = Column(String(255))
    description_en = Column(String(255))

    reference_id = Column(String(128), nullable=True, index=True)

    # credits only
    expires_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow, server_default=func.now())
