"""Errors raised while handling upload requests.

Each error is an ``HTTPException`` carrying the status code it maps to, so it
can be raised wherever it is detected and rendered by the application's
exception handler.
"""
from http import HTTPStatus
from typing import Dict, Optional

from fastapi import HTTPException


class UploadError(HTTPException):
    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=self.status.value,
            detail=detail or self.status.phrase,
            headers=headers,
        )


class Forbidden(UploadError):
    status = HTTPStatus.FORBIDDEN


class NoToken(Forbidden):
    def __init__(self):
        super().__init__("No HMAC attached to URL. Expected URL with v, v2 or token")


class AuthFailure(Forbidden):
    def __init__(self):
        super().__init__("Invalid MAC")


class NotFound(UploadError):
    status = HTTPStatus.NOT_FOUND


class Conflict(UploadError):
    status = HTTPStatus.CONFLICT


class LengthMismatch(UploadError):
    status = HTTPStatus.BAD_REQUEST


class MethodNotAllowed(UploadError):
    status = HTTPStatus.METHOD_NOT_ALLOWED


class InternalError(UploadError):
    status = HTTPStatus.INTERNAL_SERVER_ERROR
