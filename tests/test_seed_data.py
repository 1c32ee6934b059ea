"""Tests for the development seed data."""

from dietconnect.models.models import Client, FoodItem, Organization, User, UserRole
from dietconnect.seed_data import (
    GLOBAL_FOOD_ITEMS,
    seed_demo_organization,
    seed_global_food_items,
)


class TestSeedData:

    def test_global_food_items_are_idempotent(self, db_session):
        seed_global_food_items(db_session)
        seed_global_food_items(db_session)

        foods = db_session.query(FoodItem).all()
        assert len(foods) == len(GLOBAL_FOOD_ITEMS)
        assert all(food.org_id is None and food.is_verified for food in foods)

    def test_demo_organization(self, db_session):
        seed_demo_organization(db_session)
        seed_demo_organization(db_session)

        org = db_session.query(Organization).filter(Organization.name == "Demo Nutrition Clinic").one()
        owner = db_session.query(User).filter(User.org_id == org.id).one()
        assert owner.role == UserRole.OWNER
        client = db_session.query(Client).filter(Client.org_id == org.id).one()
        assert client.primary_dietitian_id == owner.id
        assert client.referral_code == "DEMO23"
