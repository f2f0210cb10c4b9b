"""
Error taxonomy for route audits.

Every failure surfaced by the audit core is a RouteAuditError subclass tagged
with an ErrorKind, so callers can branch on the kind instead of parsing the
message. Context (route name, URL, HTTP status, underlying cause) travels as
attributes.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Failure categories for a single route flow."""
    CONFIG = "config"
    AUTH = "auth"
    NAVIGATION = "navigation"
    SELECTOR_TIMEOUT = "selector_timeout"
    AUDIT = "audit"
    THRESHOLD = "threshold"
    TIMEOUT = "timeout"            # per-route deadline exceeded
    RESOURCE = "resource"          # debugging port pool exhausted


class RouteAuditError(Exception):
    """
    Base class for typed route audit failures.

    Attributes:
        kind: ErrorKind tag
        message: Human-readable description
        route_name: Route the failure belongs to (if known)
        url: Resolved URL (if known)
        status: HTTP status (navigation failures only)
        cause: Underlying exception or detail string
    """

    kind = ErrorKind.AUDIT

    def __init__(
        self,
        message: str,
        route_name: Optional[str] = None,
        url: Optional[str] = None,
        status: Optional[int] = None,
        cause: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.route_name = route_name
        self.url = url
        self.status = status
        self.cause = cause

    def with_route(self, route_name: str) -> "RouteAuditError":
        """Attach the route name if the raiser did not know it."""
        if self.route_name is None:
            self.route_name = route_name
        return self

    def context(self) -> dict:
        """Structured context fields, skipping unset ones."""
        fields = {
            "kind": self.kind.value,
            "route": self.route_name,
            "url": self.url,
            "status": self.status,
            "cause": str(self.cause) if self.cause is not None else None,
        }
        return {k: v for k, v in fields.items() if v is not None}

    def __str__(self) -> str:
        details = [f"{k}={v}" for k, v in self.context().items() if k != "kind"]
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class ConfigError(RouteAuditError):
    """Malformed or missing upstream configuration."""
    kind = ErrorKind.CONFIG


class AuthError(RouteAuditError):
    """Auth source missing, unreadable, unparsable, empty or expired."""
    kind = ErrorKind.AUTH


class NavigationError(RouteAuditError):
    """Unreachable host, no response, or HTTP status >= 400."""
    kind = ErrorKind.NAVIGATION


class SelectorTimeoutError(RouteAuditError):
    """Readiness selector never became visible."""
    kind = ErrorKind.SELECTOR_TIMEOUT


class AuditError(RouteAuditError):
    """Engine invocation failure or malformed/incomplete report."""
    kind = ErrorKind.AUDIT


class RouteTimeoutError(RouteAuditError):
    """The route flow exceeded its overall deadline."""
    kind = ErrorKind.TIMEOUT


class PortExhaustedError(RouteAuditError):
    """No debugging port could be allocated."""
    kind = ErrorKind.RESOURCE


class ThresholdFailure(RouteAuditError):
    """
    Scores did not clear the effective thresholds.

    Not a malfunction: the outcome is complete and attached as `outcome`.
    Raised only when a caller escalates a failed outcome.
    """
    kind = ErrorKind.THRESHOLD

    def __init__(self, message: str, outcome=None, **kwargs):
        super().__init__(message, **kwargs)
        self.outcome = outcome
