import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.db.models import ProtectedError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(APIException):
    """
    Typed failure raised by the service layer.

    Carries an HTTP ``status_code`` and a machine-readable ``code``; the
    optional sub-code (e.g. ``CYCLE_CLOSED``) replaces the generic one.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request."
    default_code = "BAD_REQUEST"

    def __init__(self, detail=None, code=None):
        self.code = code or self.default_code
        super().__init__(detail or self.default_detail, self.code)


class BadRequest(ServiceError):
    pass


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required."
    default_code = "UNAUTHORIZED"


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You are not allowed to perform this action."
    default_code = "FORBIDDEN"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "NOT_FOUND"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "CONFLICT"


STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "TOO_MANY_REQUESTS",
}


def _message(detail):
    if isinstance(detail, (list, tuple)):
        return _message(detail[0]) if detail else ""
    if isinstance(detail, dict):
        return "Invalid input."
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render every failure as ``{"ok": false, "error": {"code", "message"}}``.
    """
    if isinstance(exc, DjangoValidationError):
        exc = BadRequest("; ".join(exc.messages))
    elif isinstance(exc, ProtectedError):
        exc = Conflict("Record is still referenced by other data.", code="IN_USE")
    elif isinstance(exc, IntegrityError):
        exc = Conflict("Duplicate or conflicting data.")

    response = exception_handler(exc, context)
    if response is None:
        logger.exception("Unhandled error in %s", context.get("view").__class__.__name__, exc_info=exc)
        return Response(
            {"ok": False, "error": {"code": "INTERNAL_ERROR", "message": "Internal server error."}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ServiceError):
        code = exc.code
    else:
        code = STATUS_CODES.get(response.status_code, "ERROR")

    detail = exc.detail if isinstance(exc, APIException) else response.data
    if isinstance(detail, dict) and "detail" in detail:
        detail = detail["detail"]
    error = {"code": code, "message": _message(detail)}
    if isinstance(response.data, dict) and code == "BAD_REQUEST" and not isinstance(exc, ServiceError):
        error["fields"] = response.data
    response.data = {"ok": False, "error": error}
    return response
