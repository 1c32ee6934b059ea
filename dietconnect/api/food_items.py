"""Food library endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from dietconnect.core.auth import get_current_staff
from dietconnect.core.database import get_db
from dietconnect.core.errors import conflict, forbidden, not_found
from dietconnect.core.pagination import PageParams, page_params, paginate
from dietconnect.models.models import FoodItem, MealFoodItem, User
from dietconnect.schemas.schemas import (
    FoodItemCreate,
    FoodItemResponse,
    FoodItemUpdate,
    MessageResponse,
    Page,
)

router = APIRouter(prefix="/food-items", tags=["food-items"])


def _visible_food(db: Session, user: User, food_id: str) -> FoodItem:
    food = db.query(FoodItem).filter(
        FoodItem.id == food_id,
        or_(FoodItem.org_id == user.org_id, FoodItem.org_id.is_(None)),
    ).first()
    if not food:
        raise not_found("Food item")
    return food


def _own_food(db: Session, user: User, food_id: str) -> FoodItem:
    food = _visible_food(db, user, food_id)
    if food.org_id is None:
        raise forbidden("Global food items are read-only", "GLOBAL_FOOD_READONLY")
    return food


@router.post("", response_model=FoodItemResponse, status_code=201)
def create_food_item(
    data: FoodItemCreate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    food = FoodItem(**data.model_dump(), org_id=user.org_id, created_by=user.id)
    db.add(food)
    db.commit()
    db.refresh(food)
    return food


@router.get("", response_model=Page[FoodItemResponse])
def list_food_items(
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = None,
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Organization foods plus the global library."""
    query = db.query(FoodItem).filter(
        or_(FoodItem.org_id == user.org_id, FoodItem.org_id.is_(None))
    )
    if search:
        query = query.filter(FoodItem.name.ilike(f"%{search}%"))
    if category:
        query = query.filter(FoodItem.category == category)

    items, meta = paginate(query.order_by(FoodItem.name), params)
    return {"items": items, "meta": meta}


@router.get("/{food_id}", response_model=FoodItemResponse)
def get_food_item(food_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    return _visible_food(db, user, food_id)


@router.patch("/{food_id}", response_model=FoodItemResponse)
def update_food_item(
    food_id: str,
    update: FoodItemUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Update an organization food. Cached meal nutrition is not rewritten."""
    food = _own_food(db, user, food_id)
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(food, field, value)
    db.commit()
    db.refresh(food)
    return food


@router.delete("/{food_id}", response_model=MessageResponse)
def delete_food_item(food_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    food = _own_food(db, user, food_id)
    in_use = db.query(MealFoodItem.id).filter(MealFoodItem.food_id == food.id).first()
    if in_use:
        raise conflict("Food item is used in a meal plan", "FOOD_IN_USE")
    db.delete(food)
    db.commit()
    return MessageResponse(message="Food item deleted")
