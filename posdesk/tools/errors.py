from fastapi import HTTPException

from posdesk.services.exceptions import (
    DocumentLocked,
    EmailDeliveryError,
    InvalidInput,
    InvalidTransition,
    MissingOrganization,
    NotFound,
    ServiceError,
    TemplateSyntaxError,
    TransactionAborted,
)

_STATUS_CODES = (
    (NotFound, 404),
    (MissingOrganization, 400),
    (TemplateSyntaxError, 400),
    (InvalidInput, 422),
    (InvalidTransition, 409),
    (DocumentLocked, 409),
    (TransactionAborted, 409),
)


def http_error(exc: ServiceError) -> HTTPException:
    """Translate a service exception into the matching HTTP error."""

    if isinstance(exc, EmailDeliveryError):
        return HTTPException(status_code=exc.status_code, detail=str(exc))
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
