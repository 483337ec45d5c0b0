import logging
from datetime import datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sevenblue_loyalty.models.loyalty_profile import LoyaltyProfile
from sevenblue_loyalty.models.point_transaction import PointTransaction
from sevenblue_loyalty.services import ledger_service
from sevenblue_loyalty.services.errors import InvalidAmount, ProfileNotFound, ValidationError
from sevenblue_loyalty.services.loyalty_types import (
    DAILY_LOGIN_BONUS,
    DEBIT_TYPES,
    EXPIRY_WARNING_DAYS,
    PURCHASE_POINTS_UNIT,
    SIGNUP_BONUS,
    TRANSACTION_TYPES,
)
from sevenblue_loyalty.services.notification_service import notify_points_expiring, notify_tier_change
from sevenblue_loyalty.services.referral_service import generate_referral_code, list_referrals
from sevenblue_loyalty.services.tier_service import compute_tier, get_tier_info
from sevenblue_loyalty.timeutils import business_day_start, to_utc_naive, utcnow


logger = logging.getLogger(__name__)


def _now(now: datetime | None) -> datetime:
    return to_utc_naive(now) if now is not None else utcnow()


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


# ============================================================
# PROFILE
# ============================================================

def get_profile(db: Session, user_id: str) -> LoyaltyProfile | None:
    return db.query(LoyaltyProfile).filter(LoyaltyProfile.user_id == user_id).first()


def lock_profile(db: Session, user_id: str) -> LoyaltyProfile:
    """Load the profile under a row lock; the per-user serialization point."""
    profile = (
        db.query(LoyaltyProfile)
        .filter(LoyaltyProfile.user_id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not profile:
        raise ProfileNotFound(userId=user_id)
    return profile


def ensure_profile(
    db: Session,
    user_id: str,
    display_name: str | None = None,
    email: str | None = None,
) -> LoyaltyProfile:
    if not user_id or not str(user_id).strip():
        raise ValidationError("user id is required")

    profile = get_profile(db, user_id)

    if not profile:
        profile = LoyaltyProfile(
            user_id=user_id,
            display_name=display_name,
            email=email,
            total_points=0,
            total_points_earned=0,
            total_points_redeemed=0,
            current_tier=compute_tier(0),
            referral_code=generate_referral_code(user_id),
            referral_count=0,
            joined_loyalty_at=utcnow(),
        )
        db.add(profile)
        db.flush()
        logger.info("loyalty profile created", extra={"user_id": user_id})
        return profile

    # keep the denormalized identity fields fresh
    if display_name and profile.display_name != display_name:
        profile.display_name = display_name
    if email and profile.email != email:
        profile.email = email
    db.flush()

    return profile


def initialize_loyalty(
    db: Session,
    user_id: str,
    display_name: str | None = None,
    email: str | None = None,
) -> tuple[LoyaltyProfile, bool]:
    """
    New-account hook: create the profile and credit the signup bonus once.

    Returns ``(profile, credited)``; calling it again for the same user is a
    no-op.
    """
    profile = ensure_profile(db, user_id, display_name, email)
    profile = lock_profile(db, user_id)

    if ledger_service.find_entry(db, user_id, "signup"):
        return profile, False

    try:
        award_points(db, user_id, SIGNUP_BONUS, "signup", "مكافأة التسجيل", "Signup bonus")
    except IntegrityError:
        # another request credited the signup bonus first
        db.rollback()
        logger.info("signup bonus already credited", extra={"user_id": user_id})
        return get_profile(db, user_id), False
    return profile, True


# ============================================================
# POINTS
# ============================================================

def apply_points_change(
    db: Session,
    profile: LoyaltyProfile,
    points: int,
    type: str,
    description_ar: str | None = None,
    description_en: str | None = None,
    reference_id: str | None = None,
    *,
    shortfall_error=InvalidAmount,
    now: datetime | None = None,
) -> PointTransaction:
    """
    Move ``points`` (signed) on a locked profile and append the ledger entry.

    Balances are changed with a conditional UPDATE so the stored total can
    never go below zero, whatever the caller read before. When the debit does
    not fit, the transaction is rolled back and ``shortfall_error`` is raised.
    """
    now = _now(now)
    user_id = profile.user_id

    if points < 0:
        debit = -points
        updated = (
            db.query(LoyaltyProfile)
            .filter(LoyaltyProfile.user_id == user_id)
            .filter(LoyaltyProfile.total_points >= debit)
            .update(
                {
                    LoyaltyProfile.total_points: LoyaltyProfile.total_points - debit,
                    LoyaltyProfile.total_points_redeemed: LoyaltyProfile.total_points_redeemed + debit,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            available = int(profile.total_points or 0)
            db.rollback()
            logger.info(
                "points debit rejected",
                extra={"user_id": user_id, "type": type, "required": debit, "available": available},
            )
            raise shortfall_error(required=debit, available=available)
    else:
        db.query(LoyaltyProfile).filter(LoyaltyProfile.user_id == user_id).update(
            {
                LoyaltyProfile.total_points: LoyaltyProfile.total_points + points,
                LoyaltyProfile.total_points_earned: LoyaltyProfile.total_points_earned + points,
            },
            synchronize_session=False,
        )

    db.refresh(profile)

    old_tier = profile.current_tier
    new_tier = compute_tier(profile.total_points)
    if new_tier != old_tier:
        profile.current_tier = new_tier
        notify_tier_change(db, user_id, old_tier, new_tier)
        logger.info("tier changed", extra={"user_id": user_id, "from_tier": old_tier, "to_tier": new_tier})

    entry = ledger_service.append_entry(
        db,
        user_id=user_id,
        type=type,
        points=points,
        balance_after=profile.total_points,
        description_ar=description_ar,
        description_en=description_en,
        reference_id=reference_id,
        now=now,
    )
    db.flush()

    logger.info(
        "points recorded",
        extra={
            "user_id": user_id,
            "type": type,
            "points": points,
            "balance_after": entry.balance_after,
            "sequence": entry.sequence,
        },
    )
    return entry


def award_points(
    db: Session,
    user_id: str,
    amount: int,
    type: str,
    description_ar: str | None = None,
    description_en: str | None = None,
    reference_id: str | None = None,
    now: datetime | None = None,
) -> PointTransaction:
    """
    Credit or debit a user.

    ``amount`` is always a positive integer; debit types (redeem, expired,
    admin_remove) are negated here. A debit larger than the balance fails with
    ``InvalidAmount``.
    """
    if type not in TRANSACTION_TYPES:
        raise ValidationError(f"Unknown transaction type: {type}")
    if not _is_positive_int(amount):
        raise InvalidAmount("amount must be a positive integer", amount=str(amount))

    profile = lock_profile(db, user_id)
    points = -amount if type in DEBIT_TYPES else amount

    return apply_points_change(
        db,
        profile,
        points,
        type,
        description_ar,
        description_en,
        reference_id,
        shortfall_error=InvalidAmount,
        now=now,
    )


def admin_adjust_points(db: Session, user_id: str, delta: int, note: str | None = None) -> PointTransaction:
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise InvalidAmount("delta must be a non-zero integer", delta=str(delta))

    if delta > 0:
        type = "admin_add"
        description_ar = "نقاط مضافة من الإدارة"
        description_en = "Points added by admin"
    else:
        type = "admin_remove"
        description_ar = "نقاط مخصومة من الإدارة"
        description_en = "Points removed by admin"

    if note:
        description_ar = f"{description_ar}: {note}"
        description_en = f"{description_en}: {note}"

    return award_points(db, user_id, abs(delta), type, description_ar[:255], description_en[:255])


def record_purchase_points(db: Session, user_id: str, order_total, order_id: str) -> PointTransaction | None:
    """Credit 1 point per 100 EGP of ``order_total``; once per order."""
    if not order_id or not str(order_id).strip():
        raise ValidationError("order id is required")
    try:
        total = float(order_total)
    except (TypeError, ValueError):
        raise ValidationError("order total must be a number")
    if total < 0:
        raise ValidationError("order total must be >= 0")

    reference_id = str(order_id)
    lock_profile(db, user_id)

    existing = ledger_service.find_entry(db, user_id, "purchase", reference_id=reference_id)
    if existing:
        return existing

    points = int(total // PURCHASE_POINTS_UNIT)
    if points <= 0:
        return None

    try:
        return award_points(
            db,
            user_id,
            points,
            "purchase",
            f"نقاط الطلب #{order_id}",
            f"Points for order #{order_id}",
            reference_id=reference_id,
        )
    except IntegrityError:
        # the same order was credited by a concurrent request
        db.rollback()
        existing = ledger_service.find_entry(db, user_id, "purchase", reference_id=reference_id)
        if existing is None:
            raise
        logger.info("purchase points already credited", extra={"user_id": user_id, "order_id": reference_id})
        return existing


# ============================================================
# DAILY BONUS
# ============================================================

def is_daily_bonus_claimable(profile: LoyaltyProfile, now: datetime | None = None) -> bool:
    last = profile.last_daily_login_claim
    if last is None:
        return True
    return last < business_day_start(_now(now))


def claim_daily_bonus(db: Session, user_id: str, now: datetime | None = None) -> tuple[bool, int]:
    """
    Credit the daily login point at most once per business calendar day.

    The claim stamp is moved with a conditional UPDATE before any points are
    credited, so of two interleaved claims on the same day only the one whose
    UPDATE matched earns the point. Returns ``(claimed, balance)``; an
    already-claimed day is not an error.
    """
    now = _now(now)
    profile = lock_profile(db, user_id)

    if not is_daily_bonus_claimable(profile, now):
        logger.info("daily bonus already claimed", extra={"user_id": user_id})
        return False, int(profile.total_points)

    stamped = (
        db.query(LoyaltyProfile)
        .filter(LoyaltyProfile.user_id == user_id)
        .filter(
            or_(
                LoyaltyProfile.last_daily_login_claim.is_(None),
                LoyaltyProfile.last_daily_login_claim < business_day_start(now),
            )
        )
        .update({LoyaltyProfile.last_daily_login_claim: now}, synchronize_session=False)
    )
    if stamped != 1:
        db.refresh(profile)
        logger.info("daily bonus already claimed", extra={"user_id": user_id})
        return False, int(profile.total_points)

    apply_points_change(
        db,
        profile,
        DAILY_LOGIN_BONUS,
        "daily_login",
        "مكافأة الدخول اليومي",
        "Daily login bonus",
        now=now,
    )

    logger.info("daily bonus claimed", extra={"user_id": user_id, "balance": profile.total_points})
    return True, int(profile.total_points)


# ============================================================
# EXPIRY WARNING
# ============================================================

def check_expiring_points(db: Session, user_id: str, now: datetime | None = None) -> int:
    """
    Warn the user about credits expiring within the warning window.

    At most one warning per window; returns the expiring amount found (0 when
    nothing was checked or nothing expires).
    """
    now = _now(now)
    profile = lock_profile(db, user_id)

    last = profile.last_points_expiry_notification
    if last is not None and (now - last) < timedelta(days=EXPIRY_WARNING_DAYS):
        return 0

    expiring = ledger_service.expiring_credits_total(
        db,
        user_id,
        start=now,
        end=now + timedelta(days=EXPIRY_WARNING_DAYS),
    )
    if expiring > 0:
        notify_points_expiring(db, user_id, expiring, EXPIRY_WARNING_DAYS)
        profile.last_points_expiry_notification = now
        db.flush()
        logger.info("expiring points warning recorded", extra={"user_id": user_id, "points": expiring})

    return expiring


# ============================================================
# SNAPSHOT
# ============================================================

def get_loyalty_snapshot(
    db: Session,
    user_id: str,
    *,
    transactions_limit: int = 20,
    referrals_limit: int = 20,
    lang: str | None = None,
    now: datetime | None = None,
) -> dict:
    profile = get_profile(db, user_id)
    if not profile:
        raise ProfileNotFound(userId=user_id)

    return {
        "profile": profile,
        "tier": get_tier_info(profile.total_points, lang),
        "dailyBonusClaimable": is_daily_bonus_claimable(profile, now),
        "transactions": ledger_service.list_entries(db, user_id, limit=transactions_limit),
        "referrals": list_referrals(db, referrer_id=user_id, limit=referrals_limit),
    }
