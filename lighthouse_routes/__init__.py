"""
lighthouse-routes

Automated Lighthouse audits for a declarative list of web routes, with
pass/fail verdicts against configurable score thresholds.
"""

from lighthouse_routes.config import AuditConfig, load_config
from lighthouse_routes.credentials import CredentialStore
from lighthouse_routes.engine import EngineOptions, LighthouseEngine, ReportTarget
from lighthouse_routes.errors import (
    AuditError,
    AuthError,
    ConfigError,
    ErrorKind,
    NavigationError,
    PortExhaustedError,
    RouteAuditError,
    RouteTimeoutError,
    SelectorTimeoutError,
    ThresholdFailure,
)
from lighthouse_routes.models import AuditOutcome, Credential, RawCategoryReport, Route, RouteResult, ScoreScale, Viewport
from lighthouse_routes.orchestrator import RouteOrchestrator
from lighthouse_routes.ports import PortRegistry
from lighthouse_routes.scoring import DEFAULT_THRESHOLDS, evaluate, merge_thresholds, normalize
from lighthouse_routes.session import AuditSession, BrowserLauncher, SessionHandle
from lighthouse_routes.suite import assert_passed, register_route_tests

__version__ = "0.1.0"
