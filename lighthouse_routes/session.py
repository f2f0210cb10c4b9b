"""
Audit Sessions

One isolated, disposable browser execution context per route.

Each session gets:
- Its own persistent-profile Chromium process in a throwaway user-data dir
  (no shared cookie jar, no shared cache)
- An exclusively leased remote-debugging port so the audit engine can attach
- The route's matched authentication cookies (authenticated routes only)
- Navigation to baseUrl + route.path and an optional readiness selector wait

Usage:
    launcher = BrowserLauncher(headless=True)
    sessions = AuditSession(launcher, PortRegistry())

    async with sessions.open(route, "https://example.com", "auth.json", Viewport()) as handle:
        report = await engine.run_audit(handle, EngineOptions(), ReportTarget.for_route("reports", route.name))

    await launcher.cleanup()
"""

import asyncio
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from playwright.async_api import (
    async_playwright,
    BrowserContext,
    Page,
    Playwright,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeout,
)

from lighthouse_routes.credentials import CredentialStore, to_playwright_cookie
from lighthouse_routes.errors import AuthError, NavigationError, SelectorTimeoutError
from lighthouse_routes.logging_setup import get_logger
from lighthouse_routes.models import Route, Viewport
from lighthouse_routes.ports import PortRegistry


NAVIGATION_TIMEOUT_MS = 30000
SELECTOR_TIMEOUT_MS = 10000


class BrowserLauncher:
    """
    Starts Playwright once and launches one persistent Chromium context per session.

    The Playwright driver is shared; browser processes, profiles and ports are not.
    """

    def __init__(self, headless: bool = True, extra_args: Optional[List[str]] = None, logger=None):
        self.headless = headless
        self.extra_args = list(extra_args or [])
        self.logger = logger or get_logger("lighthouse_routes.session")
        self.playwright_instance: Optional[Playwright] = None
        self._lock = None
        self._lock_loop = None

    def _get_lock(self) -> asyncio.Lock:
        # One lock per event loop; sync callers run several loops in sequence
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _init_playwright(self):
        """Initialize the Playwright driver (called once, async-safe)."""
        async with self._get_lock():
            if self.playwright_instance is None:
                self.playwright_instance = await async_playwright().start()
                self.logger.debug("Playwright driver started")

    async def launch_context(self, user_data_dir: str, viewport: Viewport, port: int) -> BrowserContext:
        """Launch Chromium with a private profile and a remote-debugging port."""
        await self._init_playwright()

        return await self.playwright_instance.chromium.launch_persistent_context(
            user_data_dir,
            headless=self.headless,
            viewport=viewport.to_dict(),
            args=[f"--remote-debugging-port={port}", *self.extra_args],
        )

    async def cleanup(self):
        """Stop the Playwright driver."""
        async with self._get_lock():
            if self.playwright_instance:
                try:
                    await self.playwright_instance.stop()
                    self.logger.debug("Playwright driver stopped")
                except Exception as e:
                    self.logger.warning(f"Error stopping Playwright: {e}")
                finally:
                    self.playwright_instance = None


class SessionHandle:
    """
    Exclusively owned binding of a browser context to one route.

    Released exactly once by AuditSession.release(); further releases are no-ops.
    """

    def __init__(self, route: Route, url: str, port: int, viewport: Viewport):
        self.route = route
        self.url = url
        self.port = port
        self.viewport = viewport
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.user_data_dir: Optional[str] = None
        self.status: Optional[int] = None
        self.cookies_injected = 0
        self.released = False

    def __repr__(self):
        return f"SessionHandle(route={self.route.name!r}, url={self.url!r}, port={self.port})"


class AuditSession:
    """
    Acquires and releases per-route browser sessions.

    Args:
        launcher: BrowserLauncher (or any object with async launch_context)
        port_registry: Registry that leases unique debugging ports
        logger: Logger (default: lighthouse_routes.session)
        navigation_timeout_ms: page.goto timeout
        selector_timeout_ms: readiness selector timeout
    """

    def __init__(
        self,
        launcher,
        port_registry: PortRegistry,
        logger=None,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
        selector_timeout_ms: int = SELECTOR_TIMEOUT_MS,
    ):
        self.launcher = launcher
        self.port_registry = port_registry
        self.logger = logger or get_logger("lighthouse_routes.session")
        self.navigation_timeout_ms = navigation_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms

    async def acquire(
        self,
        route: Route,
        base_url: str,
        credential_source: Optional[str],
        viewport: Viewport,
    ) -> SessionHandle:
        """
        Build a ready-to-audit session for `route`.

        Credentials are resolved before any browser is launched, so auth
        problems never cost a navigation.

        Raises:
            AuthError, NavigationError, SelectorTimeoutError, PortExhaustedError
        """
        url = route.resolve_url(base_url)
        cookies = []
        if route.authenticated:
            cookies = self._resolve_credentials(route, base_url, credential_source)

        port = self.port_registry.acquire(route.name)
        handle = SessionHandle(route, url, port, viewport)

        try:
            handle.user_data_dir = tempfile.mkdtemp(prefix=f"lh-audit-{route.name}-")
            self.logger.debug(f"[{route.name}] launching browser on port {port}")

            handle.context = await self.launcher.launch_context(handle.user_data_dir, viewport, port)

            if cookies:
                await handle.context.add_cookies(cookies)
                handle.cookies_injected = len(cookies)
                self.logger.debug(f"[{route.name}] added {len(cookies)} cookies")

            handle.page = await handle.context.new_page()

            await self._navigate(handle)

            if route.wait_selector:
                await self._wait_until_ready(handle)

        except BaseException:
            # includes cancellation by the per-route deadline
            await self.release(handle)
            raise

        return handle

    async def release(self, handle: SessionHandle) -> None:
        """Close the context, delete the profile dir and return the port. Idempotent."""
        if handle.released:
            return
        handle.released = True

        try:
            if handle.context is not None:
                try:
                    # the close survives a deadline firing mid-release
                    await asyncio.shield(handle.context.close())
                except Exception as e:
                    self.logger.warning(f"[{handle.route.name}] error closing browser context: {e}")
        finally:
            if handle.user_data_dir and os.path.isdir(handle.user_data_dir):
                shutil.rmtree(handle.user_data_dir, ignore_errors=True)

            self.port_registry.release(handle.port)
            self.logger.debug(f"[{handle.route.name}] session released")

    @asynccontextmanager
    async def open(
        self,
        route: Route,
        base_url: str,
        credential_source: Optional[str],
        viewport: Viewport,
    ):
        """Context manager: acquire on enter, release on every exit path."""
        handle = await self.acquire(route, base_url, credential_source, viewport)
        try:
            yield handle
        finally:
            await self.release(handle)

    def _resolve_credentials(
        self,
        route: Route,
        base_url: str,
        credential_source: Optional[str],
    ) -> List[Dict[str, Any]]:
        """Load, match and filter the cookies for an authenticated route."""
        if not credential_source:
            raise AuthError(
                f"Route \"{route.name}\" requires authentication but authFile not configured. "
                f"Add \"authFile\" to routes.config.json pointing to your auth.json file.",
                route_name=route.name,
            )

        try:
            store = CredentialStore.load(credential_source)
        except AuthError as e:
            e.with_route(route.name)
            raise

        if store.is_empty():
            raise AuthError(
                f"Auth file at {credential_source} has no cookies present. "
                f"Export cookies from DevTools (Application -> Cookies -> Export).",
                route_name=route.name,
            )

        target_domain = urlparse(base_url).hostname or ""
        matched = store.match_domain(target_domain)
        if not matched:
            raise AuthError(
                f"None of the {store.count()} cookies in {credential_source} match domain {target_domain}",
                route_name=route.name,
            )

        valid, expired = store.split_expired(matched)
        for credential in expired:
            self.logger.warning(f"[{route.name}] skipping expired cookie {credential.name} ({credential.domain})")
        if not valid:
            raise AuthError(
                f"All {len(expired)} cookies for domain {target_domain} are expired",
                route_name=route.name,
            )

        return [to_playwright_cookie(c) for c in valid]

    async def _navigate(self, handle: SessionHandle) -> None:
        route, url = handle.route, handle.url
        self.logger.debug(f"[{route.name}] navigating to {url}")

        try:
            response = await handle.page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout_ms,
            )
        except PlaywrightError as e:
            raise NavigationError(
                f"Failed to navigate to {url}. Check that the server is running and reachable",
                route_name=route.name,
                url=url,
                cause=e,
            ) from e

        if response is None:
            raise NavigationError(
                f"Navigation to {url} returned no response",
                route_name=route.name,
                url=url,
            )

        handle.status = response.status
        if response.status >= 400:
            raise NavigationError(
                f"Navigation failed with HTTP {response.status}",
                route_name=route.name,
                url=url,
                status=response.status,
            )

    async def _wait_until_ready(self, handle: SessionHandle) -> None:
        selector = handle.route.wait_selector
        seconds = self.selector_timeout_ms / 1000
        self.logger.debug(f"[{handle.route.name}] waiting for selector {selector}")

        try:
            await handle.page.wait_for_selector(selector, state="visible", timeout=self.selector_timeout_ms)
        except PlaywrightTimeout as e:
            raise SelectorTimeoutError(
                f"Selector \"{selector}\" not visible on page after {seconds:g} seconds",
                route_name=handle.route.name,
                url=handle.url,
                cause=e,
            ) from e
        except PlaywrightError as e:
            raise SelectorTimeoutError(
                f"Waiting for selector \"{selector}\" failed",
                route_name=handle.route.name,
                url=handle.url,
                cause=e,
            ) from e
