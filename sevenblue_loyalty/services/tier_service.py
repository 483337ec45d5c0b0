"""
Tier calculator.

Pure functions mapping a points balance to the C / B / A tier and the
progress towards the next one. No database access.
"""

TIERS = {
    "C": {
        "key": "C",
        "nameAr": "المستوى البرونزي",
        "nameEn": "Bronze Tier",
        "minPoints": 0,
        "maxPoints": 499,
        "color": "#CD7F32",
        "benefits": {
            "ar": ["ترحيب حار بانضمامك", "نقاط عند كل تسجيل دخول"],
            "en": ["Warm welcome", "Points on every login"],
        },
    },
    "B": {
        "key": "B",
        "nameAr": "المستوى الفضي",
        "nameEn": "Silver Tier",
        "minPoints": 500,
        "maxPoints": 1499,
        "color": "#C0C0C0",
        "benefits": {
            "ar": ["خصم 5% على الطلبات", "أولوية في الدعم الفني", "وصول مبكر للعروض"],
            "en": ["5% discount on orders", "Priority support", "Early access to deals"],
        },
    },
    "A": {
        "key": "A",
        "nameAr": "المستوى الذهبي",
        "nameEn": "Gold Tier",
        "minPoints": 1500,
        "maxPoints": None,
        "color": "#FFD700",
        "benefits": {
            "ar": ["خصم 10% على الطلبات", "شحن مجاني", "هدايا حصرية", "دعم VIP"],
            "en": ["10% discount on orders", "Free shipping", "Exclusive gifts", "VIP support"],
        },
    },
}

# lowest to highest
TIER_ORDER = ["C", "B", "A"]


def translate(text_ar: str, text_en: str, lang: str | None) -> str:
    return text_ar if (lang or "").lower() == "ar" else text_en


def compute_tier(total_points: int) -> str:
    points = max(0, int(total_points or 0))
    for key in reversed(TIER_ORDER):
        if points >= TIERS[key]["minPoints"]:
            return key
    return TIER_ORDER[0]


def tier_rank(tier_key: str) -> int:
    try:
        return TIER_ORDER.index(tier_key)
    except ValueError:
        return 0


def next_tier(tier_key: str) -> str | None:
    rank = tier_rank(tier_key)
    if rank + 1 >= len(TIER_ORDER):
        return None
    return TIER_ORDER[rank + 1]


def get_tier_info(total_points: int, lang: str | None = None) -> dict:
    """
    Describe the tier for ``total_points``.

    Both languages are always returned; when ``lang`` is given, ``name`` and
    ``benefits`` hold the localized variant as well.
    """
    points = max(0, int(total_points or 0))
    key = compute_tier(points)
    tier = TIERS[key]

    nxt_key = next_tier(key)
    nxt = TIERS[nxt_key] if nxt_key else None

    points_to_next = None
    progress = 100
    if nxt:
        points_to_next = max(0, nxt["minPoints"] - points)
        band = nxt["minPoints"] - tier["minPoints"]
        progress = int((points - tier["minPoints"]) * 100 / band) if band else 100

    info = {
        "tier": key,
        "nameAr": tier["nameAr"],
        "nameEn": tier["nameEn"],
        "color": tier["color"],
        "minPoints": tier["minPoints"],
        "maxPoints": tier["maxPoints"],
        "benefitsAr": list(tier["benefits"]["ar"]),
        "benefitsEn": list(tier["benefits"]["en"]),
        "nextTier": nxt_key,
        "nextTierNameAr": nxt["nameAr"] if nxt else None,
        "nextTierNameEn": nxt["nameEn"] if nxt else None,
        "pointsToNextTier": points_to_next,
        "progressPercent": progress,
    }

    if lang:
        info["name"] = translate(tier["nameAr"], tier["nameEn"], lang)
        info["benefits"] = info["benefitsAr"] if lang.lower() == "ar" else info["benefitsEn"]
        if nxt:
            info["nextTierName"] = translate(nxt["nameAr"], nxt["nameEn"], lang)

    return info
