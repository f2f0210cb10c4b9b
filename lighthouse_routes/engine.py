"""
Lighthouse Engine Adapter

Runs the Lighthouse CLI against a live audit session by attaching to the
session's remote-debugging port, and returns the raw category scores.

The engine is run in measurement-only mode: no budget or score assertion is
passed to the CLI, so it exits 0 whatever the scores, and pass/fail is decided
afterwards by lighthouse_routes.scoring.

Artifacts:
    {report_dir}/{route}-{YYYY-MM-DD}.report.html   (visual report, kept)
    {report_dir}/{route}-{YYYY-MM-DD}.report.json   (parsed for scores)
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from lighthouse_routes.errors import AuditError
from lighthouse_routes.logging_setup import get_logger
from lighthouse_routes.models import CATEGORIES, RawCategoryReport, ScoreScale, Viewport


@dataclass(frozen=True)
class EngineOptions:
    """Options passed to the audit engine for every route."""
    viewport: Viewport = field(default_factory=Viewport)
    form_factor: str = "desktop"
    categories: Tuple[str, ...] = CATEGORIES
    disable_storage_reset: bool = True
    extra_flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ReportTarget:
    """Where the engine persists the visual report."""
    directory: str
    name: str

    @classmethod
    def for_route(cls, directory: str, route_name: str, today: Optional[date] = None) -> "ReportTarget":
        today = today or datetime.now(timezone.utc).date()
        return cls(directory=directory, name=f"{route_name}-{today.isoformat()}")

    @property
    def base_path(self) -> Path:
        return Path(self.directory) / self.name

    @property
    def json_path(self) -> Path:
        return Path(self.directory) / f"{self.name}.report.json"

    @property
    def html_path(self) -> Path:
        return Path(self.directory) / f"{self.name}.report.html"


def extract_category_scores(report: Dict[str, Any]) -> Dict[str, Optional[float]]:
    """
    Pull category scores out of a Lighthouse result.

    Accepts either a bare LHR or a wrapper with an "lhr" key. Absent
    categories come back as None; the evaluator decides what that means.
    """
    lhr = report.get("lhr", report) if isinstance(report, dict) else None
    categories = lhr.get("categories") if isinstance(lhr, dict) else None

    if not isinstance(categories, dict):
        raise AuditError("Failed to extract Lighthouse categories from report; the report structure is invalid")

    scores = {}
    for category in CATEGORIES:
        entry = categories.get(category)
        scores[category] = entry.get("score") if isinstance(entry, dict) else None
    return scores


class LighthouseEngine:
    """
    Lighthouse CLI adapter.

    Args:
        binary: Lighthouse executable (default: $LIGHTHOUSE_BIN or "lighthouse")
        logger: Logger (default: lighthouse_routes.engine)
    """

    def __init__(self, binary: Optional[str] = None, logger=None):
        self.binary = binary or os.getenv("LIGHTHOUSE_BIN", "lighthouse")
        self.logger = logger or get_logger("lighthouse_routes.engine")

    def build_command(self, url: str, port: int, options: EngineOptions, report: ReportTarget) -> List[str]:
        viewport = options.viewport
        command = [
            self.binary,
            url,
            f"--port={port}",
            "--output=json",
            "--output=html",
            f"--output-path={report.base_path}",
            f"--only-categories={','.join(options.categories)}",
            f"--form-factor={options.form_factor}",
            "--screenEmulation.mobile=false",
            f"--screenEmulation.width={viewport.width}",
            f"--screenEmulation.height={viewport.height}",
            "--screenEmulation.deviceScaleFactor=1",
            "--screenEmulation.disabled=false",
            "--quiet",
        ]
        if options.disable_storage_reset:
            # keeps injected auth cookies alive
            command.append("--disable-storage-reset")
        command.extend(options.extra_flags)
        return command

    async def run_audit(self, handle, options: EngineOptions, report: ReportTarget) -> RawCategoryReport:
        """
        Audit the page held by `handle` and return its raw category scores.

        Raises:
            AuditError: engine missing, non-zero exit, or unusable report
        """
        route_name = handle.route.name
        url = handle.page.url if handle.page is not None and handle.page.url else handle.url

        Path(report.directory).mkdir(parents=True, exist_ok=True)
        command = self.build_command(url, handle.port, options, report)
        self.logger.debug(f"[{route_name}] running audit on port {handle.port}: {' '.join(command)}")

        stdout, stderr, returncode = await self._run(command, route_name, url)

        if returncode != 0:
            detail = (stderr or stdout).decode("utf-8", errors="replace").strip()[-2000:]
            raise AuditError(
                f"Lighthouse audit failed for route \"{route_name}\" (exit code {returncode})",
                route_name=route_name,
                url=url,
                cause=detail or None,
            )

        try:
            data = json.loads(report.json_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise AuditError(
                f"Lighthouse produced no readable JSON report at {report.json_path}",
                route_name=route_name,
                url=url,
                cause=e,
            ) from e

        try:
            scores = extract_category_scores(data)
        except AuditError as e:
            e.with_route(route_name)
            e.url = e.url or url
            raise

        artifacts = {"json": str(report.json_path)}
        if report.html_path.exists():
            artifacts["html"] = str(report.html_path)

        # LHR category scores are always 0-1
        return RawCategoryReport(scores=scores, scale=ScoreScale.UNIT, artifacts=artifacts)

    async def _run(self, command: List[str], route_name: str, url: str):
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AuditError(
                f"Could not start Lighthouse ({self.binary}). Install it with: npm install -g lighthouse",
                route_name=route_name,
                url=url,
                cause=e,
            ) from e

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # deadline hit: do not leave an orphaned engine process
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        return stdout, stderr, proc.returncode
