"""
Unit tests for the command-line entry point.
"""

import json
from unittest.mock import patch

import pytest

from lighthouse_routes import cli
from lighthouse_routes.errors import NavigationError
from lighthouse_routes.models import AuditOutcome, RouteResult


def outcome(name, passed=True):
    return AuditOutcome(
        route_name=name,
        resolved_url=f"https://example.com/{name}",
        normalized_scores={"performance": 0.78, "accessibility": 0.92, "best-practices": 0.88, "seo": 0.95},
        effective_thresholds={"performance": 50, "accessibility": 80, "best-practices": 80, "seo": 80},
        passed=passed,
    )


class StubOrchestrator:
    def __init__(self, results):
        self.results = results
        self.calls = []

    def run_all_sync(self, routes, config, concurrency=None):
        self.calls.append(([r.name for r in routes], concurrency))
        return [self.results[r.name] for r in routes]


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "routes.config.json"
    path.write_text(json.dumps({
        "baseUrl": "https://example.com",
        "routes": [{"name": "home", "path": "/"}, {"name": "pricing", "path": "/pricing"}],
        "reportDir": str(tmp_path / "reports"),
    }))
    return str(path)


def run_main(argv, results):
    stub = StubOrchestrator(results)
    with patch.object(cli.RouteOrchestrator, "from_config", return_value=stub):
        code = cli.main(argv)
    return code, stub


def test_all_passed_exits_zero(config_path):
    code, stub = run_main(
        ["--config", config_path],
        {"home": RouteResult("home", outcome=outcome("home")), "pricing": RouteResult("pricing", outcome=outcome("pricing"))},
    )
    assert code == 0
    assert stub.calls == [(["home", "pricing"], None)]


def test_threshold_failure_exits_one(config_path):
    code, _ = run_main(
        ["--config", config_path],
        {"home": RouteResult("home", outcome=outcome("home")),
         "pricing": RouteResult("pricing", outcome=outcome("pricing", passed=False))},
    )
    assert code == 1


def test_route_error_exits_one(config_path):
    code, _ = run_main(
        ["--config", config_path],
        {"home": RouteResult("home", error=NavigationError("Navigation failed with HTTP 404", status=404)),
         "pricing": RouteResult("pricing", outcome=outcome("pricing"))},
    )
    assert code == 1


def test_only_and_concurrency_are_forwarded(config_path):
    code, stub = run_main(
        ["--config", config_path, "--only", "pricing", "--concurrency", "2"],
        {"pricing": RouteResult("pricing", outcome=outcome("pricing"))},
    )
    assert code == 0
    assert stub.calls == [(["pricing"], 2)]


def test_unknown_only_route_is_config_error(config_path):
    code, stub = run_main(["--config", config_path, "--only", "nope"], {})
    assert code == 2
    assert stub.calls == []


def test_missing_config_exits_two(tmp_path):
    code, stub = run_main(["--config", str(tmp_path / "missing.json")], {})
    assert code == 2
    assert stub.calls == []
