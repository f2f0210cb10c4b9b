"""
Route Orchestrator

Runs the audit flow for each configured route:

    acquire session -> (inject cookies) -> navigate -> (wait for selector)
    -> run engine -> release session -> normalize + evaluate -> outcome

Features:
- Session release on every exit path, including the per-route deadline
- Sequential batch runs by default (the engine is CPU-bound and parallel
  runs skew measurements), optional bounded concurrency
- Outcomes returned in route order, whatever the completion order
- One failing route never aborts its siblings in a batch

Usage:
    orchestrator = RouteOrchestrator.from_config(config)
    results = orchestrator.run_all_sync(config.routes, config)
"""

import asyncio
from typing import Callable, List, Optional

from lighthouse_routes.config import AuditConfig
from lighthouse_routes.engine import EngineOptions, LighthouseEngine, ReportTarget
from lighthouse_routes.errors import AuditError, RouteAuditError, RouteTimeoutError
from lighthouse_routes.logging_setup import get_logger
from lighthouse_routes.models import AuditOutcome, Route, RouteResult
from lighthouse_routes.ports import PortRegistry
from lighthouse_routes.scoring import evaluate, merge_thresholds, normalize
from lighthouse_routes.session import AuditSession, BrowserLauncher


class RouteOrchestrator:
    """
    Sequences session, engine and evaluator for each route.

    Args:
        sessions: AuditSession (or compatible object with an async `open` context manager)
        engine: Audit engine adapter with async run_audit(handle, options, report)
        logger: Logger (default: lighthouse_routes.orchestrator)
        on_result: Optional sink called with every RouteResult as it completes
        launcher: BrowserLauncher to stop after sync runs (None if not owned)
    """

    def __init__(
        self,
        sessions,
        engine,
        logger=None,
        on_result: Optional[Callable[[RouteResult], None]] = None,
        launcher: Optional[BrowserLauncher] = None,
    ):
        self.sessions = sessions
        self.engine = engine
        self.logger = logger or get_logger("lighthouse_routes.orchestrator")
        self.on_result = on_result
        self.launcher = launcher

    @classmethod
    def from_config(
        cls,
        config: AuditConfig,
        logger=None,
        on_result: Optional[Callable[[RouteResult], None]] = None,
        port_registry: Optional[PortRegistry] = None,
    ) -> "RouteOrchestrator":
        """Wire the default Playwright session and Lighthouse engine."""
        logger = logger or get_logger("lighthouse_routes.orchestrator")
        launcher = BrowserLauncher(headless=config.headless, logger=logger)
        sessions = AuditSession(launcher, port_registry or PortRegistry(logger=logger), logger=logger)
        engine = LighthouseEngine(logger=logger)
        return cls(sessions, engine, logger=logger, on_result=on_result, launcher=launcher)

    async def run_route(self, route: Route, config: AuditConfig) -> AuditOutcome:
        """
        Audit one route within the configured per-route deadline.

        Returns the outcome whether or not it passed the thresholds.

        Raises:
            RouteAuditError subclass tagged with the failure kind
        """
        url = route.resolve_url(config.base_url)
        self.logger.info(f"[{route.name}] auditing {url}")

        try:
            outcome = await asyncio.wait_for(self._audit(route, config), timeout=config.timeout_seconds)
        except asyncio.TimeoutError as e:
            error = RouteTimeoutError(
                f"Route audit exceeded {config.timeout_seconds:g}s deadline",
                route_name=route.name,
                url=url,
                cause=e,
            )
            self.logger.error(f"[{route.name}] {error}")
            raise error from e
        except RouteAuditError as e:
            e.with_route(route.name)
            self.logger.error(f"[{route.name}] {e.kind.value} failure: {e}")
            raise
        except Exception as e:
            error = AuditError("Unexpected failure auditing route", route_name=route.name, url=url, cause=e)
            self.logger.error(f"[{route.name}] {error}", exc_info=True)
            raise error from e

        verdict = "PASS" if outcome.passed else "FAIL"
        self.logger.info(f"[{route.name}] audit complete: {verdict}")
        return outcome

    async def run_all(
        self,
        routes: List[Route],
        config: AuditConfig,
        concurrency: Optional[int] = None,
    ) -> List[RouteResult]:
        """
        Audit every route, sequentially or with at most `concurrency` at once.

        Returns one RouteResult per route, in input order.
        """
        concurrency = max(1, concurrency or config.concurrency or 1)
        results: List[Optional[RouteResult]] = [None] * len(routes)

        async def run_one(index: int, route: Route):
            try:
                outcome = await self.run_route(route, config)
                result = RouteResult(route.name, outcome=outcome)
            except RouteAuditError as e:
                result = RouteResult(route.name, error=e)
            results[index] = result
            if self.on_result is not None:
                try:
                    self.on_result(result)
                except Exception as e:
                    self.logger.error(f"[{route.name}] result sink failed: {e}", exc_info=True)

        if concurrency == 1:
            for index, route in enumerate(routes):
                await run_one(index, route)
        else:
            self.logger.info(f"Auditing {len(routes)} routes, {concurrency} at a time")
            semaphore = asyncio.Semaphore(concurrency)

            async def bounded(index: int, route: Route):
                async with semaphore:
                    await run_one(index, route)

            await asyncio.gather(*(bounded(i, r) for i, r in enumerate(routes)))

        return results

    def run_route_sync(self, route: Route, config: AuditConfig) -> AuditOutcome:
        """Blocking run_route for synchronous callers (test frameworks, CLI)."""
        return asyncio.run(self._then_close(self.run_route(route, config)))

    def run_all_sync(
        self,
        routes: List[Route],
        config: AuditConfig,
        concurrency: Optional[int] = None,
    ) -> List[RouteResult]:
        """Blocking run_all for synchronous callers."""
        return asyncio.run(self._then_close(self.run_all(routes, config, concurrency)))

    async def close(self):
        if self.launcher is not None:
            await self.launcher.cleanup()

    async def _then_close(self, coro):
        # the Playwright driver belongs to this event loop
        try:
            return await coro
        finally:
            await self.close()

    async def _audit(self, route: Route, config: AuditConfig) -> AuditOutcome:
        url = route.resolve_url(config.base_url)
        options = EngineOptions(viewport=config.viewport)
        report_target = ReportTarget.for_route(config.report_dir, route.name)

        async with self.sessions.open(route, config.base_url, config.auth_file, config.viewport) as handle:
            raw_report = await self.engine.run_audit(handle, options, report_target)

        try:
            scores = normalize(raw_report)
        except AuditError as e:
            e.url = e.url or url
            raise

        thresholds = merge_thresholds(config.global_thresholds, route.thresholds)
        self.logger.debug(f"[{route.name}] scores={scores} thresholds={thresholds}")

        return evaluate(route.name, url, scores, thresholds)
