"""Meal and meal food item endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dietconnect.api.diet_plans import get_plan_for_staff
from dietconnect.core.auth import get_current_staff
from dietconnect.core.database import get_db
from dietconnect.core.errors import conflict, not_found
from dietconnect.models.models import DietPlan, Meal, MealFoodItem, MealLog, User
from dietconnect.schemas.schemas import (
    MealCreate,
    MealFoodItemCreate,
    MealFoodItemUpdate,
    MealResponse,
    MealUpdate,
    MessageResponse,
)
from dietconnect.services.plan_service import (
    add_food_to_meal,
    apply_item_nutrition,
    build_meal,
    recalculate_meal_totals,
)

router = APIRouter(prefix="/meals", tags=["meals"])


def get_meal_for_staff(db: Session, user: User, meal_id: str) -> Meal:
    meal = db.query(Meal).join(DietPlan).filter(
        Meal.id == meal_id,
        DietPlan.org_id == user.org_id,
        DietPlan.is_active.is_(True),
    ).first()
    if not meal:
        raise not_found("Meal", "MEAL_NOT_FOUND")
    return meal


def _get_item(meal: Meal, item_id: str) -> MealFoodItem:
    for item in meal.food_items:
        if item.id == item_id:
            return item
    raise not_found("Meal food item")


@router.post("", response_model=MealResponse, status_code=201)
def create_meal(data: MealCreate, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    plan = get_plan_for_staff(db, user, data.plan_id)
    meal = build_meal(db, user.org_id, plan, data)
    db.commit()
    db.refresh(meal)
    return meal


@router.patch("/{meal_id}", response_model=MealResponse)
def update_meal(
    meal_id: str,
    update: MealUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    meal = get_meal_for_staff(db, user, meal_id)
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(meal, field, value)
    db.commit()
    db.refresh(meal)
    return meal


@router.delete("/{meal_id}", response_model=MessageResponse)
def delete_meal(meal_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    """Delete a meal that has not been logged yet."""
    meal = get_meal_for_staff(db, user, meal_id)
    if db.query(MealLog.id).filter(MealLog.meal_id == meal.id).first():
        raise conflict("Meal already has logs and cannot be deleted", "MEAL_HAS_LOGS")
    db.delete(meal)
    db.commit()
    return MessageResponse(message="Meal deleted")


@router.post("/{meal_id}/food-items", response_model=MealResponse, status_code=201)
def add_meal_food_item(
    meal_id: str,
    data: MealFoodItemCreate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    meal = get_meal_for_staff(db, user, meal_id)
    add_food_to_meal(db, user.org_id, meal, data)
    recalculate_meal_totals(meal)
    db.commit()
    db.refresh(meal)
    return meal


@router.patch("/{meal_id}/food-items/{item_id}", response_model=MealResponse)
def update_meal_food_item(
    meal_id: str,
    item_id: str,
    update: MealFoodItemUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    meal = get_meal_for_staff(db, user, meal_id)
    item = _get_item(meal, item_id)
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    apply_item_nutrition(item)
    recalculate_meal_totals(meal)
    db.commit()
    db.refresh(meal)
    return meal


@router.delete("/{meal_id}/food-items/{item_id}", response_model=MealResponse)
def remove_meal_food_item(
    meal_id: str,
    item_id: str,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    meal = get_meal_for_staff(db, user, meal_id)
    item = _get_item(meal, item_id)
    meal.food_items.remove(item)
    recalculate_meal_totals(meal)
    db.commit()
    db.refresh(meal)
    return meal
