# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Protocol status codes shared by the server handlers and the client.

Every failure that crosses the wire is a :class:`StatusError`.  The server
renders it as ``{"code": ..., "detail": ...}`` with the matching HTTP
status; the client parses the same body back into a ``StatusError``.
"""

import enum

from fastapi import status as http


class StatusCode(str, enum.Enum):
    INVALID_ARGUMENT = "InvalidArgument"
    UNAUTHENTICATED = "Unauthenticated"
    PERMISSION_DENIED = "PermissionDenied"
    ALREADY_EXISTS = "AlreadyExists"
    UNKNOWN = "Unknown"
    INTERNAL = "Internal"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @classmethod
    def from_http_status(cls, code: int) -> "StatusCode":
        for status_code, http_status in _HTTP_STATUS.items():
            if http_status == code:
                return status_code
        return cls.INTERNAL


_HTTP_STATUS = {
    StatusCode.INVALID_ARGUMENT: http.HTTP_400_BAD_REQUEST,
    StatusCode.UNAUTHENTICATED: http.HTTP_401_UNAUTHORIZED,
    StatusCode.PERMISSION_DENIED: http.HTTP_403_FORBIDDEN,
    StatusCode.UNKNOWN: http.HTTP_404_NOT_FOUND,
    StatusCode.ALREADY_EXISTS: http.HTTP_409_CONFLICT,
    StatusCode.INTERNAL: http.HTTP_500_INTERNAL_SERVER_ERROR,
}


class StatusError(Exception):
    def __init__(self, code: StatusCode, detail: str):
        super().__init__(f"{code.value}: {detail}")
        self.code = code
        self.detail = detail

    def to_dict(self) -> dict:
        return {"code": self.code.value, "detail": self.detail}

    @classmethod
    def from_dict(cls, body: dict, fallback: StatusCode = StatusCode.INTERNAL) -> "StatusError":
        try:
            code = StatusCode(body.get("code"))
        except ValueError:
            code = fallback
        detail = body.get("detail")
        if not isinstance(detail, str):
            detail = str(detail)
        return cls(code, detail)
