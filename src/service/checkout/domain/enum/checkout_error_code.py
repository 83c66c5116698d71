from enum import StrEnum


class CheckoutErrorCode(StrEnum):
    """Machine-readable failure reasons returned by every checkout operation"""

    LISTING_NOT_FOUND = 'listing-not-found'
    TICKET_TYPE_UNAVAILABLE = 'ticket-type-unavailable'
    INSUFFICIENT_INVENTORY = 'insufficient-inventory'
    RATE_LIMITED = 'rate-limited'
    MISSING_BUYER_INFO = 'missing-buyer-info'
    INVALID_ORDER = 'invalid-order'
    GATEWAY_INITIATION_FAILED = 'gateway-initiation-failed'
    ORDER_NOT_FOUND = 'order-not-found'
    ORDER_ALREADY_PAID = 'order-already-paid'
    ORDER_EXPIRED = 'order-expired'
    UNKNOWN = 'unknown'

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS.get(self, 400)


_HTTP_STATUS: dict[CheckoutErrorCode, int] = {
    CheckoutErrorCode.LISTING_NOT_FOUND: 404,
    CheckoutErrorCode.TICKET_TYPE_UNAVAILABLE: 409,
    CheckoutErrorCode.INSUFFICIENT_INVENTORY: 409,
    CheckoutErrorCode.RATE_LIMITED: 429,
    CheckoutErrorCode.MISSING_BUYER_INFO: 400,
    CheckoutErrorCode.INVALID_ORDER: 400,
    CheckoutErrorCode.GATEWAY_INITIATION_FAILED: 502,
    CheckoutErrorCode.ORDER_NOT_FOUND: 404,
    CheckoutErrorCode.ORDER_ALREADY_PAID: 409,
    CheckoutErrorCode.ORDER_EXPIRED: 410,
    CheckoutErrorCode.UNKNOWN: 500,
}
