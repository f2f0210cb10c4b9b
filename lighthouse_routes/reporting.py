"""
Console reporting for audit results.

Formats per-route blocks and the end-of-run summary table, and writes them
through a logger.
"""

from typing import Dict, List, Optional

from lighthouse_routes.models import CATEGORIES, CATEGORY_LABELS, RouteResult


def score_to_string(score: float) -> str:
    return f"{round(score * 100)}/100"


def format_route_result(result: RouteResult) -> List[str]:
    """Lines describing one route: status, URL, scores vs thresholds (or the error)."""
    if not result.ok:
        error = result.error
        return [
            f"ERROR {result.route_name} [{error.kind.value}]",
            f"  {error}",
        ]

    outcome = result.outcome
    status = "PASS" if outcome.passed else "FAIL"
    lines = [f"{status} {result.route_name}", f"  URL: {outcome.resolved_url}", "  Scores:"]
    for category in CATEGORIES:
        label = f"{CATEGORY_LABELS[category]}:"
        lines.append(
            f"    {label:<18}{score_to_string(outcome.normalized_scores[category])} "
            f"(threshold: {outcome.effective_thresholds[category]}/100)"
        )
    return lines


def _table(rows: List[Dict[str, str]]) -> List[str]:
    if not rows:
        return []

    keys = list(rows[0].keys())
    widths = {k: max(len(k), *(len(row[k]) for row in rows)) for k in keys}

    lines = ["  ".join(k.ljust(widths[k]) for k in keys)]
    lines.append("  ".join("-" * widths[k] for k in keys))
    for row in rows:
        lines.append("  ".join(row[k].ljust(widths[k]) for k in keys))
    return lines


def format_summary(results: List[RouteResult], report_dir: Optional[str] = None) -> List[str]:
    """Summary table plus pass totals for a batch run."""
    rows = []
    for result in results:
        row = {"Route": result.route_name}
        for category in CATEGORIES:
            if result.ok:
                row[CATEGORY_LABELS[category]] = score_to_string(result.outcome.normalized_scores[category])
            else:
                row[CATEGORY_LABELS[category]] = "-"
        if result.ok:
            row["Status"] = "PASS" if result.passed else "FAIL"
        else:
            row["Status"] = f"ERROR ({result.kind.value})"
        rows.append(row)

    passed = sum(1 for r in results if r.passed)
    total = len(results)
    percentage = round(passed / total * 100) if total else 0

    lines = ["=" * 70, "LIGHTHOUSE AUDIT SUMMARY", "=" * 70]
    lines.extend(_table(rows))
    lines.append(f"Total: {passed}/{total} routes passed ({percentage}%)")
    if passed == total:
        lines.append("All audits passed!")
    else:
        lines.append(f"{total - passed} audit(s) failed")
    if report_dir:
        lines.append(f"Reports saved to {report_dir}")
    return lines


def log_lines(logger, lines: List[str], level: str = "info") -> None:
    emit = getattr(logger, level)
    for line in lines:
        emit(line)


class ConsoleReporter:
    """Outcome sink for RouteOrchestrator.on_result."""

    def __init__(self, logger):
        self.logger = logger

    def __call__(self, result: RouteResult) -> None:
        log_lines(self.logger, format_route_result(result), "info" if result.passed else "warning")
