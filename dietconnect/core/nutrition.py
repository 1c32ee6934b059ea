"""
Nutrition math for foods, meals and weight tracking.

Food nutrition is stored per serving (``serving_size_g``, 100 g when unset)
and scaled linearly to the quantity placed on a plan.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

DEFAULT_SERVING_SIZE_G = 100
WEIGHT_OUTLIER_KG = 3.0


@dataclass
class NutritionTotals:
    """Nutrition for a quantity of food, or a sum of several."""
    calories: int = 0
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fats_g: Optional[float] = None


def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 away from zero instead of to the nearest even number."""
    factor = 10 ** digits
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    return math.copysign(rounded, value)


def _scale_macro(value: Optional[float], multiplier: float) -> Optional[float]:
    if value is None:
        return None
    return round_half_up(value * multiplier, 1)


def scale_nutrition(food, quantity_g: float) -> NutritionTotals:
    """
    Scale a food's nutrition to a quantity in grams.

    Args:
        food: Object with calories, protein_g, carbs_g, fats_g and serving_size_g
        quantity_g: Quantity eaten in grams

    Returns:
        Calories rounded to whole kcal, macros rounded to 0.1 g
    """
    serving = food.serving_size_g or DEFAULT_SERVING_SIZE_G
    multiplier = quantity_g / serving
    return NutritionTotals(
        calories=int(round_half_up((food.calories or 0) * multiplier)),
        protein_g=_scale_macro(food.protein_g, multiplier),
        carbs_g=_scale_macro(food.carbs_g, multiplier),
        fats_g=_scale_macro(food.fats_g, multiplier),
    )


def sum_nutrition(items: Iterable[NutritionTotals]) -> NutritionTotals:
    """Add up scaled nutrition. Missing macros count as zero."""
    calories = 0
    protein = carbs = fats = 0.0
    for item in items:
        calories += item.calories or 0
        protein += item.protein_g or 0
        carbs += item.carbs_g or 0
        fats += item.fats_g or 0
    return NutritionTotals(
        calories=calories,
        protein_g=round_half_up(protein, 1),
        carbs_g=round_half_up(carbs, 1),
        fats_g=round_half_up(fats, 1),
    )


def meal_option_nutrition(meal_food_items: Sequence, option_group: int = 0) -> NutritionTotals:
    """Total nutrition of one option group of a meal, scaled from each food."""
    return sum_nutrition(
        scale_nutrition(item.food_item, item.quantity_g)
        for item in meal_food_items
        if (item.option_group or 0) == option_group and item.food_item is not None
    )


def calculate_bmi(weight_kg: float, height_cm: Optional[float]) -> Optional[float]:
    """
    Body mass index rounded to one decimal.

    Returns None when height is unknown.
    """
    if not height_cm or height_cm <= 0:
        return None
    height_m = height_cm / 100
    return round_half_up(weight_kg / (height_m * height_m), 1)


def weight_change(weight_kg: float, previous_kg: Optional[float]) -> Optional[float]:
    """Change from the previous weigh-in, rounded to 0.01 kg."""
    if previous_kg is None:
        return None
    return round_half_up(weight_kg - previous_kg, 2)


def is_weight_outlier(change_kg: Optional[float]) -> bool:
    """A jump of more than 3 kg between consecutive logs is flagged."""
    return change_kg is not None and abs(change_kg) > WEIGHT_OUTLIER_KG


def calculate_weight_trend(weights_newest_first: Sequence[float]) -> str:
    """
    Direction of recent weight change.

    With four or more entries the newer half is averaged against the older
    half (threshold 0.3 kg); with two or three, newest is compared to oldest
    (threshold 0.5 kg).

    Returns:
        "up", "down" or "stable"
    """
    weights = list(weights_newest_first)
    if len(weights) < 2:
        return "stable"

    if len(weights) >= 4:
        mid = len(weights) // 2
        recent = weights[:mid]
        older = weights[mid:]
        diff = sum(recent) / len(recent) - sum(older) / len(older)
        threshold = 0.3
    else:
        diff = weights[0] - weights[-1]
        threshold = 0.5

    if diff < -threshold:
        return "down"
    if diff > threshold:
        return "up"
    return "stable"
