"""
Platform payment error classification.

Purchase queue failures carry a platform error code. The code is mapped to a
diagnostic category for logging only; callers always receive Outcome.FAILED.
"""

from enum import Enum, IntEnum


class PaymentErrorCode(IntEnum):
    """Error codes reported by the platform purchase queue."""

    UNKNOWN = 0
    CLIENT_INVALID = 1
    PAYMENT_CANCELLED = 2
    PAYMENT_INVALID = 3
    PAYMENT_NOT_ALLOWED = 4
    STORE_PRODUCT_NOT_AVAILABLE = 5
    CLOUD_SERVICE_PERMISSION_DENIED = 6
    CLOUD_SERVICE_NETWORK_CONNECTION_FAILED = 7
    CLOUD_SERVICE_REVOKED = 8
    PRIVACY_ACKNOWLEDGEMENT_REQUIRED = 9
    UNAUTHORIZED_REQUEST_DATA = 10
    INVALID_OFFER_IDENTIFIER = 11
    INVALID_SIGNATURE = 12
    MISSING_OFFER_PARAMS = 13
    INVALID_OFFER_PRICE = 14
    OVERLAY_CANCELLED = 15
    OVERLAY_INVALID_CONFIGURATION = 16
    OVERLAY_TIMEOUT = 17
    INELIGIBLE_FOR_OFFER = 18
    UNSUPPORTED_PLATFORM = 19
    OVERLAY_PRESENTED_IN_BACKGROUND_SCENE = 20


class PaymentErrorCategory(str, Enum):
    """Diagnostic category for a failed purchase."""

    UNKNOWN_OR_JAILBREAK = "unknown_or_jailbreak"
    ACCOUNT_INELIGIBLE = "account_ineligible"
    USER_CANCELLED = "user_cancelled"
    INVALID_ORDER = "invalid_order"
    DEVICE_NOT_ALLOWED = "device_not_allowed"
    PRODUCT_UNAVAILABLE = "product_unavailable"
    CLOUD_SERVICE_DENIED = "cloud_service_denied"
    CLOUD_NETWORK_FAILURE = "cloud_network_failure"
    CLOUD_PERMISSION_REVOKED = "cloud_permission_revoked"
    PRIVACY_ACK_REQUIRED = "privacy_ack_required"
    UNAUTHORIZED_REQUEST = "unauthorized_request"
    INVALID_OFFER = "invalid_offer"
    INVALID_SIGNATURE = "invalid_signature"
    MISSING_OFFER_PARAMS = "missing_offer_params"
    INVALID_OFFER_PRICE = "invalid_offer_price"
    OVERLAY_CANCELLED = "overlay_cancelled"
    OVERLAY_MISCONFIGURED = "overlay_misconfigured"
    OVERLAY_TIMEOUT = "overlay_timeout"
    INELIGIBLE_FOR_OFFER = "ineligible_for_offer"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    OVERLAY_BACKGROUND_SCENE = "overlay_background_scene"
    UNKNOWN_ERROR = "unknown_error"


# Every PaymentErrorCode member must have an entry (checked by tests)
_CATEGORY_BY_CODE: dict[PaymentErrorCode, tuple[PaymentErrorCategory, str]] = {
    PaymentErrorCode.UNKNOWN: (
        PaymentErrorCategory.UNKNOWN_OR_JAILBREAK,
        "Unknown platform error, possibly a jailbroken device",
    ),
    PaymentErrorCode.CLIENT_INVALID: (
        PaymentErrorCategory.ACCOUNT_INELIGIBLE,
        "The current account is not allowed to purchase",
    ),
    PaymentErrorCode.PAYMENT_CANCELLED: (
        PaymentErrorCategory.USER_CANCELLED,
        "The user cancelled the payment",
    ),
    PaymentErrorCode.PAYMENT_INVALID: (
        PaymentErrorCategory.INVALID_ORDER,
        "Invalid payment request",
    ),
    PaymentErrorCode.PAYMENT_NOT_ALLOWED: (
        PaymentErrorCategory.DEVICE_NOT_ALLOWED,
        "The current device is not allowed to purchase",
    ),
    PaymentErrorCode.STORE_PRODUCT_NOT_AVAILABLE: (
        PaymentErrorCategory.PRODUCT_UNAVAILABLE,
        "Product is not available in the current storefront",
    ),
    PaymentErrorCode.CLOUD_SERVICE_PERMISSION_DENIED: (
        PaymentErrorCategory.CLOUD_SERVICE_DENIED,
        "Access to cloud services is not allowed",
    ),
    PaymentErrorCode.CLOUD_SERVICE_NETWORK_CONNECTION_FAILED: (
        PaymentErrorCategory.CLOUD_NETWORK_FAILURE,
        "The device could not connect to the network",
    ),
    PaymentErrorCode.CLOUD_SERVICE_REVOKED: (
        PaymentErrorCategory.CLOUD_PERMISSION_REVOKED,
        "The user revoked permission to use the cloud service",
    ),
    PaymentErrorCode.PRIVACY_ACKNOWLEDGEMENT_REQUIRED: (
        PaymentErrorCategory.PRIVACY_ACK_REQUIRED,
        "The user has not acknowledged the store privacy policy",
    ),
    PaymentErrorCode.UNAUTHORIZED_REQUEST_DATA: (
        PaymentErrorCategory.UNAUTHORIZED_REQUEST,
        "Payment request data used without the required entitlement",
    ),
    PaymentErrorCode.INVALID_OFFER_IDENTIFIER: (
        PaymentErrorCategory.INVALID_OFFER,
        "Invalid subscription offer identifier",
    ),
    PaymentErrorCode.INVALID_SIGNATURE: (
        PaymentErrorCategory.INVALID_SIGNATURE,
        "The offer signature is invalid",
    ),
    PaymentErrorCode.MISSING_OFFER_PARAMS: (
        PaymentErrorCategory.MISSING_OFFER_PARAMS,
        "One or more offer parameters are missing",
    ),
    PaymentErrorCode.INVALID_OFFER_PRICE: (
        PaymentErrorCategory.INVALID_OFFER_PRICE,
        "The offer price is invalid",
    ),
    PaymentErrorCode.OVERLAY_CANCELLED: (
        PaymentErrorCategory.OVERLAY_CANCELLED,
        "The store overlay was cancelled",
    ),
    PaymentErrorCode.OVERLAY_INVALID_CONFIGURATION: (
        PaymentErrorCategory.OVERLAY_MISCONFIGURED,
        "The store overlay configuration is invalid",
    ),
    PaymentErrorCode.OVERLAY_TIMEOUT: (
        PaymentErrorCategory.OVERLAY_TIMEOUT,
        "The store overlay timed out",
    ),
    PaymentErrorCode.INELIGIBLE_FOR_OFFER: (
        PaymentErrorCategory.INELIGIBLE_FOR_OFFER,
        "The user is not eligible for the subscription offer",
    ),
    PaymentErrorCode.UNSUPPORTED_PLATFORM: (
        PaymentErrorCategory.UNSUPPORTED_PLATFORM,
        "Purchases are not supported on this platform",
    ),
    PaymentErrorCode.OVERLAY_PRESENTED_IN_BACKGROUND_SCENE: (
        PaymentErrorCategory.OVERLAY_BACKGROUND_SCENE,
        "The store overlay was presented from a background scene",
    ),
}


def classify_payment_error(code: int | None) -> tuple[PaymentErrorCategory, str]:
    """
    Map a platform error code to a diagnostic category and message.

    Args:
        code: Raw platform error code, or None if the queue gave no error

    Returns:
        (category, human readable message); unrecognised or missing codes
        fall back to UNKNOWN_ERROR
    """
    if code is None:
        return PaymentErrorCategory.UNKNOWN_ERROR, "No platform error reported"
    try:
        return _CATEGORY_BY_CODE[PaymentErrorCode(code)]
    except ValueError:
        return PaymentErrorCategory.UNKNOWN_ERROR, f"Unrecognised platform error code {code}"
