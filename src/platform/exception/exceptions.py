class CustomBaseError(Exception):
    """Expected business failure; @Logger.io logs these without a traceback"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class WriteConflictError(ConflictError):
    """The database aborted a checkout transaction because another writer held the listing."""

    def __init__(self, message: str = 'Listing was updated concurrently, please retry') -> None:
        super().__init__(message)
