import uuid
from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, TIMESTAMP, Uuid
from sqlalchemy.sql import func
from sevenblue_loyalty.db import Base
from sevenblue_loyalty.timeutils import utcnow


class Reward(Base):
    __tablename__ = "rewards"

    __table_args__ = (
        CheckConstraint("points_required > 0", name="ck_rewards_points_required"),
        CheckConstraint("quantity >= 0", name="ck_rewards_quantity"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name_ar = Column(String(200), nullable=False)
    name_en = Column(String(200), nullable=False)
    description_ar = Column(String(1000))
    description_en = Column(String(1000))

    image_url = Column(String(1000))

    points_required = Column(Integer, nullable=False)

    # decremented on every redemption
    quantity = Column(Integer, nullable=False, default=0)

    category = Column(String(20), nullable=False, default="discount")
    # discount / product / voucher / experience

    # discount percentage or voucher amount, depending on category
    value = Column(Numeric(10, 2, asdecimal=False), nullable=True)

    # inactive rewards stay in the catalog for history but cannot be redeemed
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)
