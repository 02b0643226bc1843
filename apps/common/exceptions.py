import logging
import uuid

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.db.models import ProtectedError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class DomainError(ValueError):
    code = "invalid"

    def __init__(self, message, *, code=None, fields=None):
        super().__init__(message)
        if code:
            self.code = code
        self.fields = fields or {}


class InvalidIdentifier(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid identifier."
    default_code = "invalid_id"


def ensure_uuid(value, label="id"):
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifier(f"Invalid {label} format.")


UNIQUE_VIOLATION_MARKERS = ("unique constraint", "duplicate key")


def is_unique_violation(exc):
    message = str(exc).lower()
    return any(marker in message for marker in UNIQUE_VIOLATION_MARKERS)


def error_response(code, message, status=400, fields=None):
    return Response(
        {"success": False, "code": code, "message": message, "fields": fields or {}},
        status=status,
    )


def api_exception_handler(exc, context):
    if isinstance(exc, ProtectedError):
        return error_response("protected", "This record is referenced by other records and cannot be deleted.")
    if isinstance(exc, IntegrityError):
        logger.warning("integrity error on %s: %s", context.get("view").__class__.__name__, exc)
        if is_unique_violation(exc):
            return error_response("duplicate", "A record with the same unique value already exists.")
        return error_response("integrity", "The change conflicts with a data integrity rule.")
    if isinstance(exc, DjangoValidationError):
        fields = exc.message_dict if hasattr(exc, "error_dict") else {"non_field_errors": exc.messages}
        return error_response("invalid", "Validation failed.", fields=fields)
    if isinstance(exc, DomainError):
        return error_response(exc.code, str(exc), fields=exc.fields)

    response = exception_handler(exc, context)
    if response is None:
        logger.error("unhandled error in %s", context.get("view").__class__.__name__, exc_info=exc)
        return error_response("server_error", "Internal server error.", status=500)

    code = getattr(exc, "default_code", "error")
    if isinstance(exc, Http404):
        code = "not_found"

    if isinstance(response.data, dict):
        message = response.data.get("detail", "Validation failed.")
        fields = {k: v for k, v in response.data.items() if k != "detail"}
    else:
        message = "Validation failed."
        fields = {"non_field_errors": response.data}

    response.data = {
        "success": False,
        "code": code,
        "message": str(message),
        "fields": fields,
    }
    return response
