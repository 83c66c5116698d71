from src.platform.exception.exceptions import DomainError
from src.service.checkout.domain.enum.checkout_error_code import CheckoutErrorCode


class CheckoutError(DomainError):
    """Business failure of a checkout step, tagged with its error code."""

    def __init__(self, code: CheckoutErrorCode, message: str) -> None:
        self.code = code
        super().__init__(message, code.http_status)
