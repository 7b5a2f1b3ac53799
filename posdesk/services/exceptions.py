class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class InvalidInput(ServiceError):
    """Raised when a caller supplies values that break a document invariant."""


class NotFound(ServiceError):
    """Raised when a referenced document does not exist in the organization."""


class MissingOrganization(ServiceError):
    """Raised before any write when no organization id is available."""

    def __init__(self, message: str = "An active organization is required") -> None:
        super().__init__(message)


class InvalidTransition(ServiceError):
    """Raised when a status change is not allowed by the document lifecycle."""

    def __init__(self, kind: str, current: str, target: str) -> None:
        super().__init__(f"Cannot move {kind} from '{current}' to '{target}'")
        self.kind = kind
        self.current = current
        self.target = target


class DocumentLocked(ServiceError):
    """Raised when items are edited on a document that is no longer editable."""


class TransactionAborted(ServiceError):
    """Raised when a multi-document transaction is rolled back."""


class TemplateSyntaxError(ServiceError, ValueError):
    """Raised when a template contains malformed or unresolvable blocks."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} (at offset {position})"
        super().__init__(message)
        self.position = position


class EmailDeliveryError(ServiceError):
    """Raised when an invoice email cannot be delivered."""

    def __init__(
        self,
        message: str,
        code: str,
        *,
        status_code: int = 500,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.code = code
        self.status_code = status_code

