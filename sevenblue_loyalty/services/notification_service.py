from sqlalchemy.orm import Session

from sevenblue_loyalty.models.notification import Notification
from sevenblue_loyalty.services.loyalty_types import NOTIFICATION_TYPES, REWARDS_ACTION_URL
from sevenblue_loyalty.services.tier_service import TIERS, tier_rank


# ============================================================
# OUTBOX
# Rows are written in the caller's transaction; delivery (push, e-mail)
# is done by whoever reads the table.
# ============================================================

def create_notification(
    db: Session,
    *,
    user_id: str,
    type: str,
    title_ar: str,
    title_en: str,
    message_ar: str,
    message_en: str,
    action_url: str | None = REWARDS_ACTION_URL,
) -> Notification:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unsupported notification type: {type}")

    notification = Notification(
        user_id=user_id,
        type=type,
        title_ar=title_ar,
        title_en=title_en,
        message_ar=message_ar,
        message_en=message_en,
        action_url=action_url,
        is_read=False,
    )
    db.add(notification)
    db.flush()
    return notification


def notify_tier_change(db: Session, user_id: str, old_tier: str, new_tier: str) -> Notification:
    is_upgrade = tier_rank(new_tier) > tier_rank(old_tier)
    tier = TIERS[new_tier]

    if is_upgrade:
        return create_notification(
            db,
            user_id=user_id,
            type="tier_upgrade",
            title_ar="مبروك! تمت ترقية مستواك",
            title_en="Congratulations! You've been upgraded",
            message_ar=f"تم ترقيتك إلى {tier['nameAr']}! استمتع بمزايا جديدة.",
            message_en=f"You've been upgraded to {tier['nameEn']}! Enjoy new benefits.",
        )

    return create_notification(
        db,
        user_id=user_id,
        type="tier_downgrade",
        title_ar="تم تغيير مستوى عضويتك",
        title_en="Your tier has changed",
        message_ar=f"مستواك الجديد هو {tier['nameAr']}.",
        message_en=f"Your new tier is {tier['nameEn']}.",
    )


def notify_referral_success(db: Session, user_id: str, referred_user_name: str, points: int) -> Notification:
    return create_notification(
        db,
        user_id=user_id,
        type="referral_success",
        title_ar="إحالة ناجحة!",
        title_en="Successful Referral!",
        message_ar=f"قام {referred_user_name} بالتسجيل باستخدام رابط الإحالة الخاص بك! حصلت على {points} نقاط.",
        message_en=f"{referred_user_name} signed up using your referral link! You earned {points} points.",
    )


def notify_reward_redeemed(
    db: Session,
    user_id: str,
    reward_name_ar: str,
    reward_name_en: str,
    points: int,
) -> Notification:
    return create_notification(
        db,
        user_id=user_id,
        type="reward_redeemed",
        title_ar="تم استبدال المكافأة بنجاح!",
        title_en="Reward Redeemed Successfully!",
        message_ar=f"تم استبدال {reward_name_ar} مقابل {points} نقاط. سنتواصل معك قريباً!",
        message_en=f"{reward_name_en} redeemed for {points} points. We'll contact you soon!",
    )


def notify_points_expiring(db: Session, user_id: str, points: int, days: int) -> Notification:
    return create_notification(
        db,
        user_id=user_id,
        type="points_expiring",
        title_ar="نقاطك على وشك الانتهاء!",
        title_en="Your points are expiring soon!",
        message_ar=f"لديك {points} نقاط ستنتهي صلاحيتها خلال {days} أيام. استبدلها الآن!",
        message_en=f"You have {points} points expiring in {days} days. Redeem them now!",
    )


def list_notifications(
    db: Session,
    user_id: str,
    *,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    q = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))

    limit = max(1, min(limit, 200))
    offset = max(0, offset)

    return q.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()
