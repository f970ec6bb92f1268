"""Request failures raised by the security layer.

All caller-facing failures are HTTPException subclasses so FastAPI renders
them before the route handler runs. Messages are fixed and never carry
measured counts or thresholds.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class Unauthenticated(HTTPException):
    """No credential, or the credential does not resolve to a known principal."""

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Forbidden(HTTPException):
    """Known principal with insufficient role or inactive status."""

    def __init__(self, detail: str = "Admin privileges required") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class RateLimited(HTTPException):
    """Request volume exceeded a sliding-window threshold."""

    def __init__(self, detail: str = "Too many requests. Please try again later.") -> None:
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)


class LockedOut(HTTPException):
    """Failed-login volume from an IP exceeded the hourly threshold."""

    def __init__(
        self, detail: str = "Account temporarily locked due to suspicious activity."
    ) -> None:
        super().__init__(status_code=status.HTTP_423_LOCKED, detail=detail)


class InternalError(HTTPException):
    """Backing store unreachable or lookup failed for operational reasons."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class LoggingFailure(Exception):
    """Building or persisting a security event failed. Never reaches a caller."""
