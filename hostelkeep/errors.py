"""Error taxonomy surfaced to callers of the issue workflow."""

from __future__ import annotations


class HostelKeepError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(HostelKeepError):
    status_code = 404
    code = "not_found"


class ValidationError(HostelKeepError):
    status_code = 400
    code = "validation_error"


class PermissionDeniedError(HostelKeepError):
    status_code = 403
    code = "forbidden"


class AuthenticationError(HostelKeepError):
    status_code = 401
    code = "unauthenticated"
