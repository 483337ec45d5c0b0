from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sevenblue_loyalty.db import get_db
from sevenblue_loyalty.deps.identity import require_admin
from sevenblue_loyalty.schemas.reward import RewardCreate, RewardOut, RewardUpdate
from sevenblue_loyalty.services import reward_service
from sevenblue_loyalty.services.errors import RewardNotFound


router = APIRouter(prefix="/rewards", tags=["rewards"])
admin_router = APIRouter(prefix="/admin/rewards", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[RewardOut])
def list_rewards(db: Session = Depends(get_db)):
    return reward_service.list_rewards(db)


@router.get("/{reward_id}", response_model=RewardOut)
def get_reward(reward_id: str, db: Session = Depends(get_db)):
    reward = reward_service.get_reward(db, reward_id)
    # storefront only sees what it can redeem
    if not reward.is_active:
        raise RewardNotFound(rewardId=reward_id)
    return reward


@admin_router.get("", response_model=list[RewardOut])
def admin_list_rewards(
    include_inactive: bool = Query(default=True, alias="includeInactive"),
    db: Session = Depends(get_db),
):
    return reward_service.list_rewards(db, include_inactive=include_inactive)


@admin_router.post("", response_model=RewardOut, status_code=201)
def admin_create_reward(payload: RewardCreate, db: Session = Depends(get_db)):
    reward = reward_service.create_reward(db, payload.model_dump())
    db.commit()
    db.refresh(reward)
    return reward


@admin_router.get("/{reward_id}", response_model=RewardOut)
def admin_get_reward(reward_id: str, db: Session = Depends(get_db)):
    return reward_service.get_reward(db, reward_id)


@admin_router.patch("/{reward_id}", response_model=RewardOut)
def admin_update_reward(reward_id: str, payload: RewardUpdate, db: Session = Depends(get_db)):
    data = payload.model_dump(exclude_unset=True)
    reward = reward_service.update_reward(db, reward_id, data)
    db.commit()
    db.refresh(reward)
    return reward


@admin_router.delete("/{reward_id}")
def admin_delete_reward(reward_id: str, db: Session = Depends(get_db)):
    reward_service.delete_reward(db, reward_id)
    db.commit()
    return {"deleted": True}
