"""Domain errors and their translation into API responses."""
from __future__ import annotations

import logging
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError
from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class HospitalityError(Exception):
    """Base class for errors raised by the hospitality services."""

    default_message = 'The request could not be completed.'

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)


class BookingError(HospitalityError):
    """A lifecycle precondition did not hold (dates, coverage, self-request)."""


class NotPermitted(HospitalityError):
    default_message = 'You are not permitted to perform this action.'


class Conflict(HospitalityError):
    default_message = 'The request conflicts with the current state.'


class InvalidTransition(Conflict, ValueError):
    """Raised when a booking status change is not allowed from its current status."""


class BookingConflict(Conflict):
    """The requested dates clash with an accepted booking."""


class UsernameTaken(Conflict):
    default_message = 'This username is already taken.'

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, field='username')


class ConflictResponse(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = Conflict.default_message
    default_code = 'conflict'


class TransportUnavailable(exceptions.APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable. Please try again.'
    default_code = 'unavailable'


def _detail(exc: HospitalityError):
    if exc.field:
        return {exc.field: [exc.message]}
    return exc.message


def to_api_exception(exc: Exception) -> Optional[exceptions.APIException]:
    if isinstance(exc, NotPermitted):
        # Ownership failures are reported without saying what was missing.
        return exceptions.PermissionDenied(NotPermitted.default_message)
    if isinstance(exc, Conflict):
        return ConflictResponse(_detail(exc))
    if isinstance(exc, BookingError):
        return exceptions.ValidationError(_detail(exc))
    if isinstance(exc, DjangoValidationError):
        return exceptions.ValidationError(exc.message_dict if hasattr(exc, 'error_dict') else exc.messages)
    if isinstance(exc, IntegrityError):
        return ConflictResponse()
    if isinstance(exc, DatabaseError):
        return TransportUnavailable()
    return None


def api_exception_handler(exc, context):
    """DRF exception handler that understands hospitality domain errors."""
    translated = to_api_exception(exc)
    if translated is not None:
        if isinstance(exc, IntegrityError):
            logger.warning('Constraint violation while handling %s: %s', context.get('view'), exc)
        elif isinstance(exc, DatabaseError):
            logger.error('Store failure while handling %s', context.get('view'), exc_info=exc)
        elif isinstance(exc, HospitalityError):
            logger.warning('Rejected request: %s', exc.message)
        exc = translated
    return exception_handler(exc, context)
