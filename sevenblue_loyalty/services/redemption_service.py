import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from sevenblue_loyalty.config import get_settings
from sevenblue_loyalty.models.redemption import Redemption
from sevenblue_loyalty.models.reward import Reward
from sevenblue_loyalty.services import loyalty_service
from sevenblue_loyalty.services.errors import (
    InsufficientPoints,
    InvalidStatusTransition,
    RedemptionNotFound,
    RewardInactive,
    RewardNotFound,
    RewardOutOfStock,
    ValidationError,
)
from sevenblue_loyalty.services.loyalty_types import REDEMPTION_STATUSES, REDEMPTION_TRANSITIONS
from sevenblue_loyalty.services.notification_service import notify_reward_redeemed
from sevenblue_loyalty.services.reward_service import parse_reward_id
from sevenblue_loyalty.timeutils import to_utc_naive, utcnow


logger = logging.getLogger(__name__)


@dataclass
class RedemptionResult:
    redemption: Redemption
    new_balance: int


# ============================================================
# REDEEM REWARD
# ============================================================

def redeem_reward(db: Session, user_id: str, reward_id, now: datetime | None = None) -> RedemptionResult:
    """
    Exchange points for one unit of a reward.

    Checks run in a fixed order (not found, inactive, out of stock,
    insufficient points) before anything is written. The stock decrement and
    the points debit are conditional UPDATEs; if either loses a race the whole
    transaction is rolled back, so a failure never leaves partial state.
    """
    now = to_utc_naive(now) if now is not None else utcnow()
    rid = parse_reward_id(reward_id)

    reward = db.query(Reward).filter(Reward.id == rid).first()
    if not reward:
        raise RewardNotFound(rewardId=str(rid))
    if not reward.is_active:
        raise RewardInactive(rewardId=str(rid))
    if int(reward.quantity or 0) <= 0:
        raise RewardOutOfStock(rewardId=str(rid))

    profile = loyalty_service.lock_profile(db, user_id)

    # cost snapshot; later price edits do not touch this redemption
    cost = int(reward.points_required)
    if int(profile.total_points or 0) < cost:
        logger.info(
            "redemption rejected",
            extra={"user_id": user_id, "reward_id": str(rid), "reason": "INSUFFICIENT_POINTS"},
        )
        raise InsufficientPoints(required=cost, available=int(profile.total_points or 0))

    decremented = (
        db.query(Reward)
        .filter(Reward.id == rid)
        .filter(Reward.is_active.is_(True))
        .filter(Reward.quantity > 0)
        .update({Reward.quantity: Reward.quantity - 1}, synchronize_session=False)
    )
    if decremented != 1:
        db.rollback()
        # the reward changed after the checks above; report what it is now
        is_active = db.query(Reward.is_active).filter(Reward.id == rid).scalar()
        if is_active is None:
            error = RewardNotFound
        elif not is_active:
            error = RewardInactive
        else:
            error = RewardOutOfStock
        logger.info(
            "redemption rejected",
            extra={"user_id": user_id, "reward_id": str(rid), "reason": error.code},
        )
        raise error(rewardId=str(rid))

    redemption_id = uuid.uuid4()
    entry = loyalty_service.apply_points_change(
        db,
        profile,
        -cost,
        "redeem",
        f"استبدال {reward.name_ar}",
        f"Redeemed {reward.name_en}",
        reference_id=str(redemption_id),
        shortfall_error=InsufficientPoints,
        now=now,
    )

    redemption = Redemption(
        id=redemption_id,
        user_id=user_id,
        user_name=profile.display_name,
        user_email=profile.email,
        reward_id=rid,
        reward_name_ar=reward.name_ar,
        reward_name_en=reward.name_en,
        reward_image_url=reward.image_url,
        points_spent=cost,
        points_balance_after=entry.balance_after,
        status="pending",
        created_at=now,
    )
    db.add(redemption)
    db.flush()
    db.refresh(reward)

    notify_reward_redeemed(db, user_id, reward.name_ar, reward.name_en, cost)

    logger.info(
        "reward redeemed",
        extra={
            "user_id": user_id,
            "reward_id": str(rid),
            "redemption_id": str(redemption_id),
            "points_spent": cost,
            "balance_after": entry.balance_after,
        },
    )
    return RedemptionResult(redemption=redemption, new_balance=int(entry.balance_after))


# ============================================================
# STATUS LIFECYCLE
# ============================================================

def parse_redemption_id(redemption_id) -> uuid.UUID:
    if isinstance(redemption_id, uuid.UUID):
        return redemption_id
    try:
        return uuid.UUID(str(redemption_id))
    except (TypeError, ValueError):
        raise RedemptionNotFound(redemptionId=str(redemption_id))


def get_redemption(db: Session, redemption_id) -> Redemption:
    redemption = db.query(Redemption).filter(Redemption.id == parse_redemption_id(redemption_id)).first()
    if not redemption:
        raise RedemptionNotFound(redemptionId=str(redemption_id))
    return redemption


def update_redemption_status(
    db: Session,
    redemption_id,
    new_status: str,
    admin_notes: str | None = None,
    *,
    refund_on_cancel: bool | None = None,
    now: datetime | None = None,
) -> Redemption:
    """
    Move a pending redemption to fulfilled or cancelled.

    Both targets are terminal. Cancelling keeps the points spent unless
    refund-on-cancel is enabled (``LOYALTY_REFUND_ON_CANCEL``), in which case
    the points are credited back and the reward is restocked if it still
    exists.
    """
    if new_status not in REDEMPTION_STATUSES:
        raise ValidationError(f"Unknown redemption status: {new_status}")

    now = to_utc_naive(now) if now is not None else utcnow()
    if refund_on_cancel is None:
        refund_on_cancel = get_settings().refund_on_cancel

    redemption = (
        db.query(Redemption)
        .filter(Redemption.id == parse_redemption_id(redemption_id))
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not redemption:
        raise RedemptionNotFound(redemptionId=str(redemption_id))

    old_status = redemption.status
    if new_status not in REDEMPTION_TRANSITIONS.get(old_status, set()):
        raise InvalidStatusTransition(fromStatus=old_status, toStatus=new_status)

    redemption.status = new_status
    if admin_notes:
        redemption.admin_notes = admin_notes

    if new_status == "fulfilled":
        redemption.fulfilled_at = now

    if new_status == "cancelled":
        redemption.cancelled_at = now
        if refund_on_cancel:
            _refund_redemption(db, redemption, now)

    db.flush()

    logger.info(
        "redemption status updated",
        extra={
            "redemption_id": str(redemption.id),
            "from_status": old_status,
            "to_status": new_status,
            "refunded": bool(redemption.refunded),
        },
    )
    return redemption


def _refund_redemption(db: Session, redemption: Redemption, now: datetime) -> None:
    db.flush()

    profile = loyalty_service.lock_profile(db, redemption.user_id)
    loyalty_service.apply_points_change(
        db,
        profile,
        int(redemption.points_spent),
        "admin_add",
        f"استرجاع نقاط {redemption.reward_name_ar}",
        f"Refund for {redemption.reward_name_en}",
        reference_id=str(redemption.id),
        now=now,
    )

    # a deleted reward is simply not restocked
    db.query(Reward).filter(Reward.id == redemption.reward_id).update(
        {Reward.quantity: Reward.quantity + 1},
        synchronize_session=False,
    )
    redemption.refunded = True


def list_redemptions(
    db: Session,
    *,
    status: str | None = None,
    user_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Redemption]:
    q = db.query(Redemption)
    if status:
        q = q.filter(Redemption.status == status)
    if user_id:
        q = q.filter(Redemption.user_id == user_id)

    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    return q.order_by(Redemption.created_at.desc()).offset(offset).limit(limit).all()
