from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from sevenblue_loyalty.models.point_transaction import PointTransaction
from sevenblue_loyalty.services.loyalty_types import CREDIT_TYPES, POINTS_EXPIRY_MONTHS
from sevenblue_loyalty.timeutils import add_months, utcnow


def next_sequence(db: Session, user_id: str) -> int:
    current = (
        db.query(func.coalesce(func.max(PointTransaction.sequence), 0))
        .filter(PointTransaction.user_id == user_id)
        .scalar()
    )
    return int(current or 0) + 1


def append_entry(
    db: Session,
    *,
    user_id: str,
    type: str,
    points: int,
    balance_after: int,
    description_ar: str | None = None,
    description_en: str | None = None,
    reference_id: str | None = None,
    now: datetime | None = None,
) -> PointTransaction:
    """
    Append one immutable ledger entry.

    Callers hold the profile row lock, so ``sequence`` is computed against the
    latest committed entry; the (user_id, sequence) unique constraint rejects
    anything that slipped past it.
    """
    now = now or utcnow()

    expires_at = None
    if type in CREDIT_TYPES and points > 0:
        expires_at = add_months(now, POINTS_EXPIRY_MONTHS)

    entry = PointTransaction(
        user_id=user_id,
        sequence=next_sequence(db, user_id),
        type=type,
        points=int(points),
        balance_after=int(balance_after),
        description_ar=description_ar,
        description_en=description_en,
        reference_id=reference_id,
        expires_at=expires_at,
        created_at=now,
    )
    db.add(entry)
    db.flush()
    return entry


def list_entries(
    db: Session,
    user_id: str,
    *,
    type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[PointTransaction]:
    q = db.query(PointTransaction).filter(PointTransaction.user_id == user_id)
    if type:
        q = q.filter(PointTransaction.type == type)

    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    return q.order_by(PointTransaction.sequence.desc()).offset(offset).limit(limit).all()


def find_entry(db: Session, user_id: str, type: str, reference_id: str | None = None):
    q = (
        db.query(PointTransaction)
        .filter(PointTransaction.user_id == user_id)
        .filter(PointTransaction.type == type)
    )
    if reference_id is not None:
        q = q.filter(PointTransaction.reference_id == reference_id)
    return q.order_by(PointTransaction.sequence.asc()).first()


def ledger_balance(db: Session, user_id: str) -> int:
    balance = (
        db.query(func.coalesce(func.sum(PointTransaction.points), 0))
        .filter(PointTransaction.user_id == user_id)
        .scalar()
    )
    return int(balance or 0)


def find_running_balance_mismatches(db: Session, user_id: str) -> list[dict]:
    """Entries whose ``balance_after`` is not the running sum of ``points``."""
    entries = (
        db.query(PointTransaction)
        .filter(PointTransaction.user_id == user_id)
        .order_by(PointTransaction.sequence.asc())
        .all()
    )

    mismatches = []
    running = 0
    for entry in entries:
        running += int(entry.points)
        if int(entry.balance_after) != running:
            mismatches.append(
                {
                    "id": str(entry.id),
                    "sequence": entry.sequence,
                    "balanceAfter": entry.balance_after,
                    "expected": running,
                }
            )
    return mismatches


def expiring_credits_total(db: Session, user_id: str, *, start: datetime, end: datetime) -> int:
    total = (
        db.query(func.coalesce(func.sum(PointTransaction.points), 0))
        .filter(PointTransaction.user_id == user_id)
        .filter(PointTransaction.points > 0)
        .filter(PointTransaction.expires_at.isnot(None))
        .filter(PointTransaction.expires_at > start)
        .filter(PointTransaction.expires_at <= end)
        .scalar()
    )
    return int(total or 0)
