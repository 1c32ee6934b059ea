"""Shared fixtures: in-memory database, API client and test data factories."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["IDP_JWT_SECRET"] = "test-idp-secret"
os.environ["IDP_API_URL"] = ""
os.environ["CLIENT_JWT_SECRET"] = "test-client-secret"
os.environ["SMTP_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dietconnect.core.client_auth import create_access_token  # noqa: E402
from dietconnect.core.config import settings  # noqa: E402
from dietconnect.core.database import Base, get_db, utcnow  # noqa: E402
from dietconnect.core.rate_limit import reset_rate_limits  # noqa: E402
from dietconnect.main import app  # noqa: E402
from dietconnect.models.models import (  # noqa: E402
    Client,
    DietPlan,
    FoodItem,
    Meal,
    MealFoodItem,
    MealType,
    Organization,
    PlanStatus,
    User,
    UserRole,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limits()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    reset_rate_limits()


def staff_headers(user: User) -> dict:
    token = jwt.encode(
        {"sub": user.idp_user_id, "email": user.email},
        settings.IDP_JWT_SECRET,
        algorithm=settings.IDP_JWT_ALGORITHM,
    )
    return {"Authorization": f"Bearer {token}"}


def identity_headers(idp_user_id: str, email: str = None) -> dict:
    """Headers for an identity-provider user that may not be registered yet."""
    claims = {"sub": idp_user_id}
    if email:
        claims["email"] = email
    token = jwt.encode(claims, settings.IDP_JWT_SECRET, algorithm=settings.IDP_JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


def client_headers(record: Client) -> dict:
    return {"Authorization": f"Bearer {create_access_token(record.id)}"}


@pytest.fixture
def org(db_session):
    organization = Organization(name="Green Plate Nutrition", timezone="Asia/Kolkata", max_clients=50)
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    return organization


@pytest.fixture
def make_staff(db_session, org):
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.DIETITIAN, full_name: str = None, organization=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            org_id=(organization or org).id,
            idp_user_id=f"idp-user-{n}",
            role=role,
            email=f"staff{n}@greenplate.test",
            full_name=full_name or f"Staff Member {n}",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def owner(make_staff):
    return make_staff(UserRole.OWNER, "Asha Owner")


@pytest.fixture
def owner_headers(owner):
    return staff_headers(owner)


@pytest.fixture
def make_client(db_session, org, owner):
    counter = {"n": 0}

    def _make(full_name: str = None, phone: str = None, dietitian=None, **fields):
        counter["n"] += 1
        n = counter["n"]
        record = Client(
            org_id=fields.pop("org_id", org.id),
            primary_dietitian_id=(dietitian or owner).id,
            created_by=owner.id,
            full_name=full_name or f"Client {n}",
            phone=phone or f"+91980000{n:04d}",
            referral_code=fields.pop("referral_code", f"CODE{n:02d}"),
            **fields,
        )
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record

    return _make


@pytest.fixture
def food(db_session):
    item = FoodItem(
        org_id=None,
        name="Rice, white, cooked",
        category="grains",
        serving_size_g=100,
        calories=130,
        protein_g=2.7,
        carbs_g=28.2,
        fats_g=0.3,
        is_verified=True,
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def make_active_plan(db_session, owner, food):
    """An active plan with one untimed everyday breakfast of 200 g rice (260 kcal)."""

    def _make(record: Client, time_of_day: str = None):
        plan = DietPlan(
            org_id=record.org_id,
            client_id=record.id,
            created_by=owner.id,
            name="Weight loss plan",
            status=PlanStatus.ACTIVE,
            published_at=utcnow(),
        )
        meal = Meal(
            meal_type=MealType.BREAKFAST,
            time_of_day=time_of_day,
            name="Rice bowl",
            total_calories=260,
            total_protein_g=5.4,
            total_carbs_g=56.4,
            total_fats_g=0.6,
        )
        meal.food_items.append(MealFoodItem(
            food_id=food.id,
            quantity_g=200,
            option_group=0,
            calories=260,
            protein_g=5.4,
            carbs_g=56.4,
            fats_g=0.6,
        ))
        plan.meals.append(meal)
        db_session.add(plan)
        db_session.commit()
        db_session.refresh(plan)
        return plan

    return _make
