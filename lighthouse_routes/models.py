"""
Route Audit Data Models

Data classes and enums shared by the credential store, browser sessions,
audit engine adapter, score evaluator and orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from lighthouse_routes.errors import ErrorKind, RouteAuditError


# Audited categories, in report order
CATEGORIES = ("performance", "accessibility", "best-practices", "seo")

CATEGORY_LABELS = {
    "performance": "Performance",
    "accessibility": "Accessibility",
    "best-practices": "Best Practices",
    "seo": "SEO",
}


class ScoreScale(Enum):
    """Unit a raw engine report is expressed in."""
    UNIT = "unit"          # 0-1
    PERCENT = "percent"    # 0-100


@dataclass(frozen=True)
class Viewport:
    """Fixed desktop viewport used for both the browser and the engine."""
    width: int = 1280
    height: int = 720

    def to_dict(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class Route:
    """
    One named, path-addressed target to be audited.

    `name` is unique within a run and used for report file names. `path`
    always starts with "/" (checked by the config loader, not here).
    """
    name: str
    path: str
    authenticated: bool = False
    thresholds: Optional[Dict[str, int]] = None
    wait_selector: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def resolve_url(self, base_url: str) -> str:
        # Plain concatenation; duplicate slashes are left as configured
        return f"{base_url}{self.path}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        """Create from a routes.config.json route entry."""
        thresholds = data.get("thresholds")
        return cls(
            name=data["name"],
            path=data["path"],
            authenticated=bool(data.get("authenticated", False)),
            thresholds=dict(thresholds) if thresholds else None,
            wait_selector=data.get("waitFor"),
            display_name=data.get("displayName"),
        )


@dataclass(frozen=True)
class Credential:
    """
    A stored authentication cookie.

    `same_site_raw` keeps whatever the export contained; it is normalized
    only when the cookie is handed to the browser.
    """
    domain: str
    name: str
    value: str
    path: Optional[str] = None
    secure: Optional[bool] = None
    http_only: Optional[bool] = None
    same_site_raw: Optional[str] = None
    expires_at_epoch: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        if self.expires_at_epoch is None:
            return False
        # DevTools exports session cookies with -1 / 0
        if self.expires_at_epoch <= 0:
            return False
        return self.expires_at_epoch < now

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        """Create from a DevTools/Playwright cookie export record."""
        expires = data.get("expirationDate", data.get("expires"))
        return cls(
            domain=data.get("domain") or "",
            name=data.get("name", ""),
            value=data.get("value", ""),
            path=data.get("path"),
            secure=data.get("secure"),
            http_only=data.get("httpOnly"),
            same_site_raw=data.get("sameSite"),
            expires_at_epoch=float(expires) if expires is not None else None,
        )


@dataclass(frozen=True)
class RawCategoryReport:
    """
    Category scores as returned by the audit engine.

    `scale` is set by adapters that know their unit. When it is None the
    evaluator falls back to inferring the unit from the performance score.
    """
    scores: Dict[str, Optional[float]]
    scale: Optional[ScoreScale] = None
    artifacts: Dict[str, str] = field(default_factory=dict)


def meets_threshold(score: float, threshold: float) -> bool:
    """score is 0-1, threshold 0-100. Equality passes despite float noise (0.29 * 100)."""
    return round(score * 100, 6) >= threshold


@dataclass(frozen=True)
class AuditOutcome:
    """Final per-route record: normalized scores, effective thresholds, verdict."""
    route_name: str
    resolved_url: str
    normalized_scores: Dict[str, float]
    effective_thresholds: Dict[str, int]
    passed: bool

    def score_percent(self, category: str) -> int:
        return round(self.normalized_scores[category] * 100)

    def failed_categories(self):
        return [
            category for category in CATEGORIES
            if not meets_threshold(self.normalized_scores[category], self.effective_thresholds[category])
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routeName": self.route_name,
            "url": self.resolved_url,
            "scores": dict(self.normalized_scores),
            "thresholds": dict(self.effective_thresholds),
            "passed": self.passed,
        }


@dataclass(frozen=True)
class RouteResult:
    """Outcome or typed error for one route of a batch run."""
    route_name: str
    outcome: Optional[AuditOutcome] = None
    error: Optional[RouteAuditError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.outcome is not None

    @property
    def passed(self) -> bool:
        return self.ok and self.outcome.passed

    @property
    def kind(self) -> Optional[ErrorKind]:
        if self.error is not None:
            return self.error.kind
        if self.outcome is not None and not self.outcome.passed:
            return ErrorKind.THRESHOLD
        return None
