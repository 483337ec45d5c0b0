import logging
import uuid

from sqlalchemy.orm import Session

from sevenblue_loyalty.models.reward import Reward
from sevenblue_loyalty.services.errors import RewardNotFound, ValidationError
from sevenblue_loyalty.services.loyalty_types import REWARD_CATEGORIES


logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "name_ar",
    "name_en",
    "description_ar",
    "description_en",
    "image_url",
    "points_required",
    "quantity",
    "category",
    "value",
    "is_active",
}


def parse_reward_id(reward_id) -> uuid.UUID:
    if isinstance(reward_id, uuid.UUID):
        return reward_id
    try:
        return uuid.UUID(str(reward_id))
    except (TypeError, ValueError):
        raise RewardNotFound(rewardId=str(reward_id))


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_reward(data: dict) -> None:
    errors = {}

    for field in ("name_ar", "name_en"):
        if not (data.get(field) or "").strip():
            errors[field] = "required"

    points_required = data.get("points_required")
    if not _is_int(points_required) or points_required <= 0:
        errors["points_required"] = "must be a positive integer"

    quantity = data.get("quantity")
    if not _is_int(quantity) or quantity < 0:
        errors["quantity"] = "must be a non-negative integer"

    if data.get("category") not in REWARD_CATEGORIES:
        errors["category"] = f"must be one of {sorted(REWARD_CATEGORIES)}"

    value = data.get("value")
    if value is not None:
        try:
            if float(value) < 0:
                errors["value"] = "must be >= 0"
        except (TypeError, ValueError):
            errors["value"] = "must be a number"

    if errors:
        raise ValidationError("Invalid reward", fields=errors)


def get_reward(db: Session, reward_id) -> Reward:
    reward = db.query(Reward).filter(Reward.id == parse_reward_id(reward_id)).first()
    if not reward:
        raise RewardNotFound(rewardId=str(reward_id))
    return reward


def list_rewards(db: Session, include_inactive: bool = False) -> list[Reward]:
    q = db.query(Reward)
    if not include_inactive:
        q = q.filter(Reward.is_active.is_(True))
    return q.order_by(Reward.points_required.asc(), Reward.created_at.asc()).all()


def create_reward(db: Session, data: dict) -> Reward:
    values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    values.setdefault("quantity", 0)
    values.setdefault("category", "discount")
    values.setdefault("is_active", True)
    _validate_reward(values)

    reward = Reward(**values)
    db.add(reward)
    db.flush()

    logger.info("reward created", extra={"reward_id": str(reward.id), "points_required": reward.points_required})
    return reward


def update_reward(db: Session, reward_id, data: dict) -> Reward:
    reward = get_reward(db, reward_id)

    changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    merged = {field: getattr(reward, field) for field in EDITABLE_FIELDS}
    merged.update(changes)
    _validate_reward(merged)

    # existing redemptions keep their own points/name snapshot
    for k, v in changes.items():
        setattr(reward, k, v)
    db.flush()

    logger.info("reward updated", extra={"reward_id": str(reward.id), "fields": sorted(changes)})
    return reward


def delete_reward(db: Session, reward_id) -> None:
    reward = get_reward(db, reward_id)
    db.delete(reward)
    db.flush()
    logger.info("reward deleted", extra={"reward_id": str(reward_id)})
