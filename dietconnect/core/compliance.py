"""
Meal compliance scoring.

A logged meal earns up to 100 points:

    on time (25) + photo (15) + correct foods (30) + portion accuracy (30)

plus a bonus when a dietitian has reviewed it and a penalty for
substitutions. Scores map to a traffic-light colour: GREEN >= 80,
YELLOW >= 60, RED otherwise.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dietconnect.core.config import settings
from dietconnect.core.nutrition import round_half_up

# Scores derived from status alone when a log was never scored
STATUS_FALLBACK_SCORES = {
    "eaten": 85,
    "substituted": 50,
    "skipped": 0,
}


@dataclass
class ComplianceConfig:
    """Weights, bonuses and thresholds used by the scorer."""
    on_time: int = 25
    photo: int = 15
    correct_foods: int = 30
    portion_accuracy: int = 30
    dietitian_approved_bonus: int = 10
    substitution_penalty: int = -10
    skipped_score: int = 0
    green_min: int = 80
    yellow_min: int = 60
    on_time_window_minutes: int = 30
    portion_tolerance_pct: float = 0.15
    trend_threshold: int = 5

    @classmethod
    def from_settings(cls) -> "ComplianceConfig":
        return cls(
            on_time=settings.COMPLIANCE_WEIGHT_ON_TIME,
            photo=settings.COMPLIANCE_WEIGHT_PHOTO,
            correct_foods=settings.COMPLIANCE_WEIGHT_CORRECT_FOODS,
            portion_accuracy=settings.COMPLIANCE_WEIGHT_PORTION_ACCURACY,
            dietitian_approved_bonus=settings.COMPLIANCE_BONUS_DIETITIAN_APPROVED,
            substitution_penalty=settings.COMPLIANCE_PENALTY_SUBSTITUTION,
            skipped_score=settings.COMPLIANCE_SKIPPED_SCORE,
            green_min=settings.COMPLIANCE_GREEN_MIN,
            yellow_min=settings.COMPLIANCE_YELLOW_MIN,
            on_time_window_minutes=settings.COMPLIANCE_ON_TIME_WINDOW_MINUTES,
            portion_tolerance_pct=settings.COMPLIANCE_PORTION_TOLERANCE_PCT,
            trend_threshold=settings.COMPLIANCE_TREND_THRESHOLD,
        )


@dataclass
class MealComplianceInput:
    """Everything the scorer needs to know about one meal log."""
    status: str
    scheduled_date: date
    scheduled_time: Optional[str] = None
    logged_at: Optional[datetime] = None
    has_photo: bool = False
    substitute_calories_est: Optional[int] = None
    planned_calories: float = 0
    has_dietitian_feedback: bool = False
    timezone_name: str = "UTC"


@dataclass
class ComplianceResult:
    score: int
    color: str
    issues: list[str] = field(default_factory=list)


def compliance_color(score: int, config: Optional[ComplianceConfig] = None) -> str:
    """Map a score to GREEN, YELLOW or RED."""
    config = config or ComplianceConfig.from_settings()
    if score >= config.green_min:
        return "GREEN"
    if score >= config.yellow_min:
        return "YELLOW"
    return "RED"


def parse_scheduled_time(value: Optional[str]) -> Optional[time]:
    """Parse an ``HH:MM`` string. Returns None when missing or malformed."""
    if not value:
        return None
    parts = value.split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return time(hours, minutes)


def _zone(name: Optional[str]):
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def scheduled_datetime_utc(
    scheduled_date: date, scheduled_time: Optional[str], timezone_name: str = "UTC"
) -> Optional[datetime]:
    """
    Combine a plan date and local ``HH:MM`` into a naive UTC datetime.

    Args:
        scheduled_date: Day the meal is planned for
        scheduled_time: Local wall-clock time in the organization's timezone
        timezone_name: IANA timezone name of the organization

    Returns:
        Naive UTC datetime, or None when the time cannot be parsed
    """
    parsed = parse_scheduled_time(scheduled_time)
    if parsed is None:
        return None
    local = datetime.combine(scheduled_date, parsed, tzinfo=_zone(timezone_name))
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def score_meal(
    meal: MealComplianceInput, config: Optional[ComplianceConfig] = None
) -> ComplianceResult:
    """
    Score a single meal log.

    Args:
        meal: Meal log facts (status, timing, photo, portions, review)
        config: Scoring weights; read from settings when omitted

    Returns:
        Score clamped to 0-100, its colour and the list of issues found
    """
    config = config or ComplianceConfig.from_settings()

    if meal.status == "skipped":
        score = config.skipped_score
        return ComplianceResult(score, compliance_color(score, config), ["Meal was skipped"])

    score = 0
    issues: list[str] = []

    # On time
    if meal.logged_at:
        scheduled = scheduled_datetime_utc(
            meal.scheduled_date, meal.scheduled_time, meal.timezone_name
        )
        if scheduled is None:
            score += config.on_time
        else:
            diff_minutes = abs((meal.logged_at - scheduled) / timedelta(minutes=1))
            if diff_minutes <= config.on_time_window_minutes:
                score += config.on_time
            else:
                issues.append(f"Meal logged {int(round_half_up(diff_minutes))} min from scheduled time")
    else:
        issues.append("Meal not logged yet")

    # Photo
    if meal.has_photo:
        score += config.photo
    else:
        issues.append("No photo uploaded")

    # Correct foods
    if meal.status == "eaten":
        score += config.correct_foods
    elif meal.status == "substituted":
        score += int(round_half_up(config.correct_foods * 0.5))
        issues.append("Substituted foods from planned meal")
    else:
        issues.append("Foods not confirmed")

    # Portion accuracy
    if meal.substitute_calories_est and meal.planned_calories > 0:
        deviation = abs(meal.substitute_calories_est - meal.planned_calories) / meal.planned_calories
        if deviation <= config.portion_tolerance_pct:
            score += config.portion_accuracy
        else:
            partial = max(0.0, config.portion_accuracy * (1 - deviation))
            score += int(round_half_up(partial))
            issues.append(f"Calorie deviation: {int(round_half_up(deviation * 100))}%")
    elif meal.status == "eaten":
        score += config.portion_accuracy

    if meal.has_dietitian_feedback:
        score += config.dietitian_approved_bonus

    if meal.status == "substituted":
        score += config.substitution_penalty
        issues.append("Substitution penalty applied")

    score = max(0, min(100, score))
    return ComplianceResult(score, compliance_color(score, config), issues)


def score_from_status(status: str, stored_score: Optional[int]) -> Optional[int]:
    """Stored score if present, else an estimate from status. Pending meals have none."""
    if stored_score is not None:
        return stored_score
    return STATUS_FALLBACK_SCORES.get(status)


def average_score(scores) -> int:
    """Rounded mean of the non-null scores, 0 when there are none."""
    values = [s for s in scores if s is not None]
    if not values:
        return 0
    return int(round_half_up(sum(values) / len(values)))


def trend_direction(current: float, previous: float, config: Optional[ComplianceConfig] = None) -> str:
    """Compare two averages: "improving", "declining" or "stable"."""
    config = config or ComplianceConfig.from_settings()
    diff = current - previous
    if diff > config.trend_threshold:
        return "improving"
    if diff < -config.trend_threshold:
        return "declining"
    return "stable"


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def local_today(timezone_name: Optional[str] = None) -> date:
    """Today's date on the wall clock of the given timezone."""
    return datetime.now(_zone(timezone_name)).date()
