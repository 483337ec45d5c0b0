import base64
import hashlib
import logging
import urllib.parse
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sevenblue_loyalty.config import get_settings
from sevenblue_loyalty.models.loyalty_profile import LoyaltyProfile
from sevenblue_loyalty.models.referral import Referral
from sevenblue_loyalty.services.loyalty_types import REFERRAL_BONUS, REFERRED_BONUS
from sevenblue_loyalty.services.notification_service import notify_referral_success
from sevenblue_loyalty.timeutils import utcnow


logger = logging.getLogger(__name__)

REFERRAL_CODE_PREFIX = "SB"
REFERRAL_CODE_HASH_LENGTH = 10


@dataclass
class ReferralResult:
    success: bool
    reason: str | None = None  # INVALID_CODE / SELF_REFERRAL / ALREADY_REFERRED
    referral: Referral | None = None


# ============================================================
# CODES
# ============================================================

def generate_referral_code(user_id: str) -> str:
    """Stable, URL-safe code for ``user_id``; no lookup needed to rebuild it."""
    digest = hashlib.sha256(str(user_id).encode("utf-8")).digest()
    encoded = base64.b32encode(digest).decode("ascii").rstrip("=")
    return f"{REFERRAL_CODE_PREFIX}{encoded[:REFERRAL_CODE_HASH_LENGTH]}"


def normalize_referral_code(code: str | None) -> str:
    return (code or "").strip().upper()


def resolve_referral_code(db: Session, code: str | None) -> str | None:
    normalized = normalize_referral_code(code)
    if not normalized:
        return None

    row = (
        db.query(LoyaltyProfile.user_id)
        .filter(LoyaltyProfile.referral_code == normalized)
        .first()
    )
    return row[0] if row else None


def build_referral_url(code: str, base_url: str | None = None) -> str:
    base = (base_url if base_url is not None else get_settings().public_base_url).rstrip("/")
    return f"{base}/auth?ref={urllib.parse.quote(code)}"


# ============================================================
# REGISTRATION
# ============================================================

def register_referral(
    db: Session,
    code: str | None,
    new_user_id: str,
    new_user_name: str | None = None,
    new_user_email: str | None = None,
) -> ReferralResult:
    """
    Attribute ``new_user_id`` to the owner of ``code``.

    Invalid codes, self-referrals and replays are reported through
    ``ReferralResult.reason`` and change nothing. On success the referral
    row, both credits and the referrer's counter are written in the caller's
    transaction, so they commit or roll back together.
    """
    referrer_id = resolve_referral_code(db, code)
    if not referrer_id:
        logger.info("referral ignored", extra={"reason": "INVALID_CODE", "referred_user_id": new_user_id})
        return ReferralResult(success=False, reason="INVALID_CODE")

    if referrer_id == new_user_id:
        logger.info("referral ignored", extra={"reason": "SELF_REFERRAL", "referred_user_id": new_user_id})
        return ReferralResult(success=False, reason="SELF_REFERRAL")

    if _is_referred(db, new_user_id):
        logger.info("referral ignored", extra={"reason": "ALREADY_REFERRED", "referred_user_id": new_user_id})
        return ReferralResult(success=False, reason="ALREADY_REFERRED")

    try:
        referral = _record_referral(db, referrer_id, new_user_id, new_user_name, new_user_email)
    except IntegrityError:
        db.rollback()
        if _is_referred(db, new_user_id):
            # a concurrent request registered the same new user first
            logger.info("referral ignored", extra={"reason": "ALREADY_REFERRED", "referred_user_id": new_user_id})
            return ReferralResult(success=False, reason="ALREADY_REFERRED")
        # the new user's signup bonus landed concurrently and is now visible
        referral = _record_referral(db, referrer_id, new_user_id, new_user_name, new_user_email)

    logger.info(
        "referral registered",
        extra={"referral_id": str(referral.id), "referrer_id": referrer_id, "referred_user_id": new_user_id},
    )
    return ReferralResult(success=True, referral=referral)


def _is_referred(db: Session, user_id: str) -> bool:
    return db.query(Referral.id).filter(Referral.referred_user_id == user_id).first() is not None


def _record_referral(
    db: Session,
    referrer_id: str,
    new_user_id: str,
    new_user_name: str | None,
    new_user_email: str | None,
) -> Referral:
    from sevenblue_loyalty.services import ledger_service, loyalty_service

    referrer = loyalty_service.lock_profile(db, referrer_id)
    loyalty_service.ensure_profile(db, new_user_id, new_user_name, new_user_email)
    loyalty_service.lock_profile(db, new_user_id)

    display_name = new_user_name or "User"
    now = utcnow()

    referral = Referral(
        referrer_id=referrer_id,
        referrer_name=referrer.display_name or "User",
        referred_user_id=new_user_id,
        referred_user_name=new_user_name,
        referred_user_email=new_user_email,
        points_awarded=REFERRAL_BONUS,
        status="completed",
        created_at=now,
        completed_at=now,
    )
    db.add(referral)
    db.flush()

    reference_id = str(referral.id)

    loyalty_service.award_points(
        db,
        referrer_id,
        REFERRAL_BONUS,
        "referral_signup",
        f"مكافأة إحالة {display_name}",
        f"Referral bonus for {display_name}",
        reference_id=reference_id,
        now=now,
    )
    referrer.referral_count = int(referrer.referral_count or 0) + 1
    db.flush()

    # the signup bonus is credited once per user, whichever path gets there first
    if not ledger_service.find_entry(db, new_user_id, "signup"):
        loyalty_service.award_points(
            db,
            new_user_id,
            REFERRED_BONUS,
            "signup",
            "مكافأة التسجيل",
            "Signup bonus",
            reference_id=reference_id,
            now=now,
        )

    notify_referral_success(db, referrer_id, display_name, REFERRAL_BONUS)
    return referral


# ============================================================
# READS
# ============================================================

def list_referrals(
    db: Session,
    *,
    referrer_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Referral]:
    q = db.query(Referral)
    if referrer_id:
        q = q.filter(Referral.referrer_id == referrer_id)

    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    return q.order_by(Referral.created_at.desc()).offset(offset).limit(limit).all()


def list_top_referrers(db: Session, limit: int = 10) -> list[dict]:
    limit = max(1, min(limit, 100))

    profiles = (
        db.query(LoyaltyProfile)
        .filter(LoyaltyProfile.referral_count > 0)
        .order_by(LoyaltyProfile.referral_count.desc(), LoyaltyProfile.joined_loyalty_at.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "userId": p.user_id,
            "userName": p.display_name or "User",
            "referralCount": int(p.referral_count or 0),
            "totalPointsEarned": int(p.total_points_earned or 0),
            "joinedLoyaltyAt": p.joined_loyalty_at,
        }
        for p in profiles
    ]
