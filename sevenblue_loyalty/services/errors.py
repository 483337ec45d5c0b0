from fastapi import HTTPException


class LoyaltyError(HTTPException):
    """Typed engine failure.

    Raised from the service layer and rendered by FastAPI as
    ``{"detail": {"code", "message", "messageAr"}}`` so the storefront can show
    a localized message without parsing English text.
    """

    status_code = 400
    code = "LOYALTY_ERROR"
    message_en = "Loyalty operation failed"
    message_ar = "تعذر تنفيذ العملية"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.message_en
        self.context = context
        detail = {"code": self.code, "message": self.message, "messageAr": self.message_ar}
        if context:
            detail.update(context)
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(LoyaltyError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message_en = "Invalid input"
    message_ar = "بيانات غير صالحة"


class InvalidAmount(LoyaltyError):
    status_code = 400
    code = "INVALID_AMOUNT"
    message_en = "Invalid points amount"
    message_ar = "عدد النقاط غير صالح"


class ProfileNotFound(LoyaltyError):
    status_code = 404
    code = "PROFILE_NOT_FOUND"
    message_en = "Loyalty profile not found"
    message_ar = "لم يتم العثور على حساب الولاء"


class RewardNotFound(LoyaltyError):
    status_code = 404
    code = "REWARD_NOT_FOUND"
    message_en = "Reward not found"
    message_ar = "المكافأة غير موجودة"


class RedemptionNotFound(LoyaltyError):
    status_code = 404
    code = "REDEMPTION_NOT_FOUND"
    message_en = "Redemption not found"
    message_ar = "طلب الاستبدال غير موجود"


class RewardInactive(LoyaltyError):
    status_code = 409
    code = "REWARD_INACTIVE"
    message_en = "Reward is not available"
    message_ar = "المكافأة غير متاحة حاليا"


class RewardOutOfStock(LoyaltyError):
    status_code = 409
    code = "REWARD_OUT_OF_STOCK"
    message_en = "Reward is out of stock"
    message_ar = "نفدت الكمية"


class InsufficientPoints(LoyaltyError):
    status_code = 409
    code = "INSUFFICIENT_POINTS"
    message_en = "Not enough points"
    message_ar = "نقاطك غير كافية"


class InvalidStatusTransition(LoyaltyError):
    status_code = 409
    code = "INVALID_STATUS_TRANSITION"
    message_en = "Invalid redemption status transition"
    message_ar = "لا يمكن تغيير حالة الطلب"
