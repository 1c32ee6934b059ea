"""Tests for meal compliance scoring."""

from datetime import date, datetime, time

import pytest

from dietconnect.core.compliance import (
    ComplianceConfig,
    MealComplianceInput,
    average_score,
    compliance_color,
    parse_scheduled_time,
    scheduled_datetime_utc,
    score_from_status,
    score_meal,
    trend_direction,
    week_start,
)

CONFIG = ComplianceConfig()
DAY = date(2024, 5, 15)


def meal(**overrides) -> MealComplianceInput:
    fields = {
        "status": "eaten",
        "scheduled_date": DAY,
        "scheduled_time": "08:00",
        "logged_at": datetime(2024, 5, 15, 8, 10),
        "has_photo": True,
        "planned_calories": 400,
        "timezone_name": "UTC",
    }
    fields.update(overrides)
    return MealComplianceInput(**fields)


class TestScoreMeal:
    """Tests for single meal scoring."""

    def test_perfect_meal(self):
        result = score_meal(meal(), CONFIG)
        assert result.score == 100
        assert result.color == "GREEN"
        assert result.issues == []

    def test_skipped_meal(self):
        result = score_meal(meal(status="skipped"), CONFIG)
        assert result.score == 0
        assert result.color == "RED"
        assert result.issues == ["Meal was skipped"]

    def test_missing_photo(self):
        result = score_meal(meal(has_photo=False), CONFIG)
        assert result.score == 85
        assert result.issues == ["No photo uploaded"]

    def test_late_meal(self):
        """An hour late misses the on-time points."""
        result = score_meal(meal(logged_at=datetime(2024, 5, 15, 9, 0)), CONFIG)
        assert result.score == 75
        assert result.color == "YELLOW"
        assert result.issues == ["Meal logged 60 min from scheduled time"]

    def test_on_time_window_boundary(self):
        result = score_meal(meal(logged_at=datetime(2024, 5, 15, 7, 30)), CONFIG)
        assert result.score == 100

    def test_scheduled_time_uses_organization_timezone(self):
        """08:00 in India is 02:30 UTC."""
        result = score_meal(
            meal(timezone_name="Asia/Kolkata", logged_at=datetime(2024, 5, 15, 2, 40)),
            CONFIG,
        )
        assert result.score == 100

    def test_missing_scheduled_time_counts_as_on_time(self):
        result = score_meal(meal(scheduled_time=None), CONFIG)
        assert result.score == 100

    def test_substituted_meal(self):
        result = score_meal(meal(status="substituted", substitute_calories_est=400), CONFIG)
        # 25 on time + 15 photo + 15 half foods + 30 portion - 10 penalty
        assert result.score == 75
        assert result.issues == [
            "Substituted foods from planned meal",
            "Substitution penalty applied",
        ]

    def test_portion_deviation(self):
        result = score_meal(meal(substitute_calories_est=600), CONFIG)
        assert result.score == 85
        assert "Calorie deviation: 50%" in result.issues

    def test_portion_within_tolerance(self):
        result = score_meal(meal(substitute_calories_est=450), CONFIG)
        assert result.score == 100

    def test_dietitian_bonus_is_clamped(self):
        result = score_meal(meal(has_dietitian_feedback=True), CONFIG)
        assert result.score == 100

    def test_dietitian_bonus_lifts_score(self):
        result = score_meal(meal(has_photo=False, has_dietitian_feedback=True), CONFIG)
        assert result.score == 95

    def test_unlogged_pending_meal(self):
        result = score_meal(meal(status="pending", logged_at=None, has_photo=False), CONFIG)
        assert result.score == 0
        assert result.issues == [
            "Meal not logged yet",
            "No photo uploaded",
            "Foods not confirmed",
        ]


class TestComplianceHelpers:
    """Tests for colours, averages and trends."""

    @pytest.mark.parametrize("score,color", [
        (100, "GREEN"),
        (80, "GREEN"),
        (79, "YELLOW"),
        (60, "YELLOW"),
        (59, "RED"),
        (0, "RED"),
    ])
    def test_compliance_color(self, score, color):
        assert compliance_color(score, CONFIG) == color

    def test_average_score_ignores_missing(self):
        assert average_score([80, None, 91]) == 86
        assert average_score([]) == 0
        assert average_score([None]) == 0

    def test_score_from_status(self):
        assert score_from_status("eaten", None) == 85
        assert score_from_status("substituted", None) == 50
        assert score_from_status("skipped", None) == 0
        assert score_from_status("pending", None) is None
        assert score_from_status("eaten", 72) == 72

    def test_trend_direction(self):
        assert trend_direction(80, 70, CONFIG) == "improving"
        assert trend_direction(70, 80, CONFIG) == "declining"
        assert trend_direction(72, 70, CONFIG) == "stable"

    def test_week_start_is_monday(self):
        assert week_start(date(2024, 5, 15)) == date(2024, 5, 13)
        assert week_start(date(2024, 5, 13)) == date(2024, 5, 13)
        assert week_start(date(2024, 5, 19)) == date(2024, 5, 13)

    def test_parse_scheduled_time(self):
        assert parse_scheduled_time("7:30") == time(7, 30)
        assert parse_scheduled_time("25:00") is None
        assert parse_scheduled_time("noon") is None
        assert parse_scheduled_time(None) is None

    def test_scheduled_datetime_utc(self):
        assert scheduled_datetime_utc(DAY, "08:00", "Asia/Kolkata") == datetime(2024, 5, 15, 2, 30)
        assert scheduled_datetime_utc(DAY, "08:00", "Not/AZone") == datetime(2024, 5, 15, 8, 0)
