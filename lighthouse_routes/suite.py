"""
Test-framework integration.

Registers one test per configured route through a caller-supplied
`register(test_name, test_fn)` capability. Each test function runs the route
and raises a descriptive error on failure, so the host framework reports a
readable cause instead of a bare boolean.

pytest example (conftest.py or a test module):

    import pytest
    from lighthouse_routes.config import load_config
    from lighthouse_routes.suite import register_route_tests

    CASES = {}
    register_route_tests(load_config("routes.config.json"), CASES.__setitem__)

    @pytest.mark.parametrize("name", sorted(CASES))
    def test_lighthouse(name):
        CASES[name]()
"""

from typing import Callable, Optional

from lighthouse_routes.config import AuditConfig
from lighthouse_routes.errors import ThresholdFailure
from lighthouse_routes.logging_setup import get_logger, set_verbose
from lighthouse_routes.models import CATEGORIES, CATEGORY_LABELS, AuditOutcome, Route
from lighthouse_routes.orchestrator import RouteOrchestrator


def describe_threshold_failure(outcome: AuditOutcome) -> str:
    lines = [f"Lighthouse audit failed thresholds for route \"{outcome.route_name}\":"]
    for category in CATEGORIES:
        label = f"{CATEGORY_LABELS[category]}:"
        lines.append(
            f"  {label} {outcome.score_percent(category)}/100 "
            f"(threshold: {outcome.effective_thresholds[category]}/100)"
        )
    return "\n".join(lines)


def assert_passed(outcome: AuditOutcome) -> AuditOutcome:
    """Escalate a failed outcome into ThresholdFailure; passthrough otherwise."""
    if not outcome.passed:
        raise ThresholdFailure(
            describe_threshold_failure(outcome),
            outcome=outcome,
            route_name=outcome.route_name,
            url=outcome.resolved_url,
        )
    return outcome


def route_test_name(route: Route) -> str:
    return f"{route.label} - Lighthouse audit"


def register_route_tests(
    config: AuditConfig,
    register: Callable[[str, Callable[[], AuditOutcome]], None],
    orchestrator: Optional[RouteOrchestrator] = None,
    logger=None,
) -> int:
    """
    Register one test per route.

    Args:
        config: Resolved audit configuration
        register: Capability called as register(test_name, test_fn)
        orchestrator: Orchestrator to run routes with (default: from_config)
        logger: Logger (default: lighthouse_routes.suite)

    Returns:
        Number of tests registered
    """
    logger = logger or get_logger("lighthouse_routes.suite")
    set_verbose(logger, config.verbose)
    orchestrator = orchestrator or RouteOrchestrator.from_config(config, logger=logger)

    logger.debug(f"Base URL: {config.base_url}")
    logger.debug(f"Routes: {len(config.routes)}")

    def make_test(route: Route):
        def run_audit_test() -> AuditOutcome:
            outcome = orchestrator.run_route_sync(route, config)
            return assert_passed(outcome)

        run_audit_test.__name__ = f"test_lighthouse_{route.name}"
        return run_audit_test

    for route in config.routes:
        register(route_test_name(route), make_test(route))

    return len(config.routes)
