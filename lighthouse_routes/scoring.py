"""
Score evaluation: unit normalization, threshold merging, pass/fail.
"""

from typing import Dict, Mapping, Optional

from lighthouse_routes.errors import AuditError
from lighthouse_routes.logging_setup import get_logger
from lighthouse_routes.models import (
    CATEGORIES,
    AuditOutcome,
    RawCategoryReport,
    ScoreScale,
    meets_threshold,
)

logger = get_logger("lighthouse_routes.scoring")


# Conservative fallbacks, used only when neither the route nor the global
# config sets a category.
DEFAULT_THRESHOLDS = {
    "performance": 25,
    "accessibility": 50,
    "best-practices": 50,
    "seo": 50,
}


def infer_scale(scores: Mapping[str, float]) -> ScoreScale:
    """
    Guess the unit from the performance score alone.

    Ambiguous at exactly 1: a perfect 0-1 score and a 1/100 score look the
    same, and both are treated as 0-1.
    """
    return ScoreScale.PERCENT if scores["performance"] > 1 else ScoreScale.UNIT


def normalize(report: RawCategoryReport) -> Dict[str, float]:
    """
    Return category scores in [0, 1].

    Raises:
        AuditError: any category missing (absent or null)
    """
    missing = [c for c in CATEGORIES if report.scores.get(c) is None]
    if missing:
        raise AuditError(f"Missing scores for: {', '.join(missing)}")

    scores = {c: float(report.scores[c]) for c in CATEGORIES}

    scale = report.scale
    if scale is None:
        scale = infer_scale(scores)
        logger.debug(f"Report carries no score scale, inferred {scale.value}")

    if scale is ScoreScale.PERCENT:
        return {c: value / 100 for c, value in scores.items()}
    return scores


def merge_thresholds(
    global_thresholds: Optional[Mapping[str, int]] = None,
    route_thresholds: Optional[Mapping[str, int]] = None,
) -> Dict[str, int]:
    """Per category: route value, else global value, else built-in default."""
    global_thresholds = global_thresholds or {}
    route_thresholds = route_thresholds or {}

    merged = {}
    for category in CATEGORIES:
        if route_thresholds.get(category) is not None:
            merged[category] = route_thresholds[category]
        elif global_thresholds.get(category) is not None:
            merged[category] = global_thresholds[category]
        else:
            merged[category] = DEFAULT_THRESHOLDS[category]
    return merged


def evaluate(
    route_name: str,
    resolved_url: str,
    scores: Mapping[str, float],
    thresholds: Mapping[str, int],
) -> AuditOutcome:
    """Every category must reach its threshold; equal counts as passing."""
    passed = all(meets_threshold(scores[c], thresholds[c]) for c in CATEGORIES)

    return AuditOutcome(
        route_name=route_name,
        resolved_url=resolved_url,
        normalized_scores={c: scores[c] for c in CATEGORIES},
        effective_thresholds={c: thresholds[c] for c in CATEGORIES},
        passed=passed,
    )
