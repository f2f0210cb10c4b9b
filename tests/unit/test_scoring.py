"""
Unit tests for score normalization, threshold merging and pass/fail.
"""

import pytest

from lighthouse_routes.errors import AuditError
from lighthouse_routes.models import CATEGORIES, RawCategoryReport, ScoreScale
from lighthouse_routes.scoring import DEFAULT_THRESHOLDS, evaluate, merge_thresholds, normalize


UNIT_SCORES = {"performance": 0.78, "accessibility": 0.92, "best-practices": 0.88, "seo": 0.95}
PERCENT_SCORES = {"performance": 78, "accessibility": 92, "best-practices": 88, "seo": 95}


class TestNormalize:

    def test_unit_scores_are_unchanged(self):
        assert normalize(RawCategoryReport(UNIT_SCORES)) == UNIT_SCORES

    def test_percent_scores_are_divided_by_100(self):
        assert normalize(RawCategoryReport(PERCENT_SCORES)) == UNIT_SCORES

    def test_normalizing_twice_is_stable(self):
        once = normalize(RawCategoryReport(PERCENT_SCORES))
        assert normalize(RawCategoryReport(once)) == once

    def test_performance_alone_decides_the_scale(self):
        # performance <= 1 means the whole report is read as 0-1
        scores = {"performance": 1, "accessibility": 0.5, "best-practices": 0.5, "seo": 0.5}
        assert normalize(RawCategoryReport(scores))["performance"] == 1.0

    def test_explicit_scale_overrides_inference(self):
        scores = {"performance": 1, "accessibility": 90, "best-practices": 90, "seo": 90}
        normalized = normalize(RawCategoryReport(scores, scale=ScoreScale.PERCENT))
        assert normalized["performance"] == pytest.approx(0.01)
        assert normalized["seo"] == pytest.approx(0.9)

    def test_explicit_unit_scale_keeps_perfect_score(self):
        scores = {"performance": 1.0, "accessibility": 1.0, "best-practices": 1.0, "seo": 1.0}
        assert normalize(RawCategoryReport(scores, scale=ScoreScale.UNIT)) == scores

    def test_missing_categories_are_an_audit_error(self):
        with pytest.raises(AuditError) as exc_info:
            normalize(RawCategoryReport({"performance": 0.9, "seo": None}))
        assert exc_info.value.message == "Missing scores for: accessibility, best-practices, seo"


class TestMergeThresholds:

    def test_route_value_wins(self):
        merged = merge_thresholds({"performance": 50}, {"performance": 75})
        assert merged["performance"] == 75

    def test_global_value_used_without_route_override(self):
        assert merge_thresholds({"performance": 50}, None)["performance"] == 50

    def test_builtin_defaults_without_any_override(self):
        assert merge_thresholds() == DEFAULT_THRESHOLDS
        assert DEFAULT_THRESHOLDS == {"performance": 25, "accessibility": 50, "best-practices": 50, "seo": 50}

    def test_merge_is_per_category(self):
        merged = merge_thresholds(
            {"performance": 50, "seo": 90},
            {"accessibility": 95},
        )
        assert merged == {"performance": 50, "accessibility": 95, "best-practices": 50, "seo": 90}

    def test_zero_override_is_respected(self):
        assert merge_thresholds({"seo": 80}, {"seo": 0})["seo"] == 0


class TestEvaluate:

    def test_all_categories_clear(self):
        thresholds = {"performance": 50, "accessibility": 80, "best-practices": 80, "seo": 80}
        outcome = evaluate("home", "https://example.com/", UNIT_SCORES, thresholds)
        assert outcome.passed is True
        assert outcome.failed_categories() == []
        assert outcome.route_name == "home"
        assert outcome.resolved_url == "https://example.com/"

    def test_score_equal_to_threshold_passes(self):
        scores = {c: 0.5 for c in CATEGORIES}
        thresholds = {c: 50 for c in CATEGORIES}
        assert evaluate("home", "u", scores, thresholds).passed is True

    def test_equality_survives_float_noise(self):
        # 0.29 * 100 == 28.999999999999996
        scores = {c: 0.29 for c in CATEGORIES}
        thresholds = {c: 29 for c in CATEGORIES}
        assert evaluate("home", "u", scores, thresholds).passed is True

    def test_single_category_below_threshold_fails(self):
        scores = dict(UNIT_SCORES, seo=0.79)
        thresholds = {"performance": 50, "accessibility": 80, "best-practices": 80, "seo": 80}
        outcome = evaluate("home", "u", scores, thresholds)
        assert outcome.passed is False
        assert outcome.failed_categories() == ["seo"]

    def test_no_weighted_aggregate(self):
        # great average, one category short
        scores = {"performance": 0.24, "accessibility": 1.0, "best-practices": 1.0, "seo": 1.0}
        assert evaluate("home", "u", scores, DEFAULT_THRESHOLDS).passed is False
