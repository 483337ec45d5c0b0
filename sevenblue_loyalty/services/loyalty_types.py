SIGNUP_BONUS = 3
DAILY_LOGIN_BONUS = 1
REFERRAL_BONUS = 5  # credited to the referrer
REFERRED_BONUS = 3  # credited to the new user, same as the signup bonus
PURCHASE_POINTS_UNIT = 100  # 1 point per 100 EGP spent
POINTS_EXPIRY_MONTHS = 6
EXPIRY_WARNING_DAYS = 7

CREDIT_TYPES = {"signup", "daily_login", "referral_signup", "purchase", "admin_add"}
DEBIT_TYPES = {"redeem", "expired", "admin_remove"}
TRANSACTION_TYPES = CREDIT_TYPES | DEBIT_TYPES

REWARD_CATEGORIES = {"discount", "product", "voucher", "experience"}

REDEMPTION_STATUSES = {"pending", "fulfilled", "cancelled"}
REDEMPTION_TRANSITIONS = {
    "pending": {"fulfilled", "cancelled"},
    "fulfilled": set(),
    "cancelled": set(),
}

NOTIFICATION_TYPES = {
    "points_earned",
    "points_expiring",
    "tier_upgrade",
    "tier_downgrade",
    "reward_redeemed",
    "referral_success",
}

REWARDS_ACTION_URL = "/profile?tab=rewards"
