"""
Pytest configuration and shared fixtures for route audit tests.

Provides fake Playwright contexts/pages, a fake audit engine, cookie files
and config builders. No browser or Lighthouse binary is needed.
"""

import asyncio
import json

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from lighthouse_routes.config import AuditConfig
from lighthouse_routes.models import RawCategoryReport, Route
from lighthouse_routes.orchestrator import RouteOrchestrator
from lighthouse_routes.ports import PortRegistry
from lighthouse_routes.session import AuditSession


# Test markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


PERCENT_SCORES = {"performance": 78, "accessibility": 92, "best-practices": 88, "seo": 95}
EXAMPLE_THRESHOLDS = {"performance": 50, "accessibility": 80, "best-practices": 80, "seo": 80}


class FakeResponse:
    def __init__(self, status):
        self.status = status


class FakePage:
    """Stands in for playwright Page: scripted goto/wait_for_selector."""

    def __init__(self, site):
        self.site = site
        self.url = "about:blank"
        self.goto_calls = []
        self.selector_calls = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append(url)
        if url in self.site.unreachable:
            raise PlaywrightError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if url in self.site.no_response:
            return None
        self.url = url
        return FakeResponse(self.site.statuses.get(url, 200))

    async def wait_for_selector(self, selector, state=None, timeout=None):
        self.selector_calls.append((selector, state, timeout))
        if selector not in self.site.visible_selectors:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")


class FakeContext:
    def __init__(self, site, port):
        self.site = site
        self.port = port
        self.cookies = []
        self.pages = []
        self.closed = False

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)

    async def new_page(self):
        page = FakePage(self.site)
        self.pages.append(page)
        return page

    async def close(self):
        await asyncio.sleep(self.site.close_delay)
        self.closed = True


class FakeSite:
    """Scriptable server behaviour shared by all pages of a FakeLauncher."""

    def __init__(self):
        self.statuses = {}
        self.unreachable = set()
        self.no_response = set()
        self.visible_selectors = set()
        self.close_delay = 0


class FakeLauncher:
    """Replaces BrowserLauncher; records every context it launches."""

    def __init__(self):
        self.site = FakeSite()
        self.contexts = []
        self.launch_args = []

    async def launch_context(self, user_data_dir, viewport, port):
        self.launch_args.append((user_data_dir, viewport, port))
        context = FakeContext(self.site, port)
        self.contexts.append(context)
        return context

    @property
    def open_contexts(self):
        return [c for c in self.contexts if not c.closed]


class FakeEngine:
    """Returns scripted raw reports; can be slowed down or made to hang."""

    def __init__(self, scores=None, scale=None, delays=None, error=None, per_route=None):
        self.scores = scores or dict(PERCENT_SCORES)
        self.per_route = per_route or {}
        self.scale = scale
        self.delays = delays or {}
        self.error = error
        self.calls = []
        self.active = 0
        self.max_active = 0
        self.active_ports = set()
        self.port_collisions = 0

    async def run_audit(self, handle, options, report):
        self.calls.append((handle.route.name, handle.port, options, report))
        if handle.port in self.active_ports:
            self.port_collisions += 1
        self.active_ports.add(handle.port)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(handle.route.name, 0))
            if self.error is not None:
                raise self.error
            scores = self.per_route.get(handle.route.name, self.scores)
            return RawCategoryReport(scores=dict(scores), scale=self.scale)
        finally:
            self.active -= 1
            self.active_ports.discard(handle.port)


@pytest.fixture
def fake_launcher():
    return FakeLauncher()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def port_registry():
    return PortRegistry(port_range=(9300, 9309))


@pytest.fixture
def audit_session(fake_launcher, port_registry):
    return AuditSession(fake_launcher, port_registry)


@pytest.fixture
def orchestrator(audit_session, fake_engine):
    return RouteOrchestrator(audit_session, fake_engine)


@pytest.fixture
def make_config(tmp_path):
    """Build an AuditConfig for https://example.com with the given routes."""
    def _make(routes, **overrides):
        values = dict(
            base_url="https://example.com",
            routes=list(routes),
            global_thresholds=dict(EXAMPLE_THRESHOLDS),
            report_dir=str(tmp_path / "reports"),
        )
        values.update(overrides)
        return AuditConfig(**values)
    return _make


@pytest.fixture
def home_route():
    return Route(name="home", path="/", authenticated=False)


@pytest.fixture
def cookie_file(tmp_path):
    """Write a DevTools-style cookie export and return its path."""
    def _write(cookies, key="Cookies"):
        path = tmp_path / "auth.json"
        path.write_text(json.dumps({key: cookies}))
        return str(path)
    return _write


@pytest.fixture
def engine_factory():
    """FakeEngine class, for tests that need scripted scores or delays."""
    return FakeEngine
