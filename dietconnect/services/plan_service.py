"""Diet plan helpers shared by the staff and client-app routers."""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from dietconnect.core.nutrition import meal_option_nutrition, scale_nutrition
from dietconnect.core.errors import not_found
from dietconnect.models.models import DietPlan, FoodItem, Meal, MealFoodItem, PlanStatus


def get_active_plan(db: Session, client_id: str) -> Optional[DietPlan]:
    return db.query(DietPlan).filter(
        DietPlan.client_id == client_id,
        DietPlan.status == PlanStatus.ACTIVE,
        DietPlan.is_active.is_(True),
    ).order_by(DietPlan.published_at.desc()).first()


def meal_applies_on(meal: Meal, day: date) -> bool:
    """A meal pinned to a date or weekday only applies then; otherwise every day."""
    if meal.meal_date is not None:
        return meal.meal_date == day
    if meal.day_of_week is not None:
        return meal.day_of_week == day.weekday()
    return True


def meals_for_date(plan: Optional[DietPlan], day: date) -> list[Meal]:
    if plan is None:
        return []
    meals = [m for m in plan.meals if meal_applies_on(m, day)]
    return sorted(meals, key=lambda m: (m.time_of_day or "99:99", m.sequence_number or 0))


def apply_item_nutrition(item: MealFoodItem) -> None:
    """Cache the scaled nutrition of one meal item."""
    totals = scale_nutrition(item.food_item, item.quantity_g)
    item.calories = totals.calories
    item.protein_g = totals.protein_g
    item.carbs_g = totals.carbs_g
    item.fats_g = totals.fats_g


def recalculate_meal_totals(meal: Meal) -> None:
    """Meal totals reflect the default option group (0)."""
    totals = meal_option_nutrition(meal.food_items, 0)
    meal.total_calories = totals.calories
    meal.total_protein_g = totals.protein_g
    meal.total_carbs_g = totals.carbs_g
    meal.total_fats_g = totals.fats_g


def find_food_for_org(db: Session, org_id: str, food_id: str) -> Optional[FoodItem]:
    return db.query(FoodItem).filter(
        FoodItem.id == food_id,
        or_(FoodItem.org_id == org_id, FoodItem.org_id.is_(None)),
    ).first()


def add_food_to_meal(db: Session, org_id: str, meal: Meal, data) -> MealFoodItem:
    """Attach a food (global or the organization's) to a meal and cache its nutrition."""
    food = find_food_for_org(db, org_id, data.food_id)
    if not food:
        raise not_found("Food item", "FOOD_NOT_FOUND")
    item = MealFoodItem(
        food_id=food.id,
        quantity_g=data.quantity_g,
        option_group=data.option_group,
        option_label=data.option_label,
        sort_order=data.sort_order,
        notes=data.notes,
    )
    item.food_item = food
    meal.food_items.append(item)
    apply_item_nutrition(item)
    return item


def build_meal(db: Session, org_id: str, plan: DietPlan, data) -> Meal:
    """Create a meal with its food items on ``plan`` (not committed)."""
    meal = Meal(**data.model_dump(exclude={"food_items", "plan_id"}))
    plan.meals.append(meal)
    for item_data in data.food_items:
        add_food_to_meal(db, org_id, meal, item_data)
    recalculate_meal_totals(meal)
    return meal


def copy_meal(source: Meal) -> Meal:
    meal = Meal(
        day_of_week=source.day_of_week,
        meal_date=source.meal_date,
        sequence_number=source.sequence_number,
        meal_type=source.meal_type,
        time_of_day=source.time_of_day,
        name=source.name,
        description=source.description,
        instructions=source.instructions,
        total_calories=source.total_calories,
        total_protein_g=source.total_protein_g,
        total_carbs_g=source.total_carbs_g,
        total_fats_g=source.total_fats_g,
    )
    for item in source.food_items:
        meal.food_items.append(MealFoodItem(
            food_id=item.food_id,
            quantity_g=item.quantity_g,
            option_group=item.option_group,
            option_label=item.option_label,
            calories=item.calories,
            protein_g=item.protein_g,
            carbs_g=item.carbs_g,
            fats_g=item.fats_g,
            sort_order=item.sort_order,
            notes=item.notes,
        ))
    return meal
