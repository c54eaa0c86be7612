"""
Translation of service-layer errors into API responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response

from .exceptions import (
    ServiceError,
    NotFoundError,
    ValidationError,
    InsufficientStockError,
    InvalidTransitionError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = [
    (NotFoundError, 'Not Found', status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, 'Insufficient Stock', status.HTTP_409_CONFLICT),
    (InvalidTransitionError, 'Invalid Transition', status.HTTP_409_CONFLICT),
    (ValidationError, 'Validation Error', status.HTTP_400_BAD_REQUEST),
    (PersistenceError, 'Server Error', status.HTTP_503_SERVICE_UNAVAILABLE),
]


def service_error_response(exc: ServiceError) -> Response:
    """Build the error payload for a domain error."""
    for error_class, label, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            break
    else:
        label, status_code = 'Server Error', status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.warning(f"{label}: {exc}")
    payload = {'error': label, 'detail': str(exc)}
    if isinstance(exc, InsufficientStockError):
        payload['available'] = str(exc.available)
    if isinstance(exc, PersistenceError):
        payload['detail'] = 'An error occurred, please try again'
    return Response(payload, status=status_code)


def unexpected_error_response(exc: Exception) -> Response:
    logger.exception(f"Unexpected error: {exc}")
    return Response(
        {'error': 'Server Error', 'detail': 'An unexpected error occurred'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
