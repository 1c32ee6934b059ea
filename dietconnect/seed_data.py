"""
Seed data for the DietConnect database.

Includes:
- Global food items shared by every organization (values per serving)
- A demo practice with an owner and one client for local development
"""

from dietconnect.core.database import SessionLocal, engine, Base
from dietconnect.models.models import Client, FoodItem, Organization, User, UserRole

GLOBAL_FOOD_ITEMS = [
    # name, category, serving g, kcal, protein, carbs, fats, fiber
    ("Roti, whole wheat", "grains", 40, 120, 3.6, 18.0, 3.7, 2.4),
    ("Rice, white, cooked", "grains", 100, 130, 2.7, 28.2, 0.3, 0.4),
    ("Rice, brown, cooked", "grains", 100, 123, 2.7, 25.6, 1.0, 1.6),
    ("Oats, rolled", "grains", 40, 152, 5.3, 27.0, 2.6, 4.0),
    ("Poha, cooked", "grains", 100, 130, 2.5, 27.0, 1.5, 1.0),
    ("Dal, moong, cooked", "legumes", 100, 105, 7.0, 18.0, 0.4, 7.6),
    ("Dal, toor, cooked", "legumes", 100, 116, 7.2, 20.0, 0.4, 6.0),
    ("Chana, boiled", "legumes", 100, 164, 8.9, 27.4, 2.6, 7.6),
    ("Rajma, boiled", "legumes", 100, 127, 8.7, 22.8, 0.5, 6.4),
    ("Paneer", "dairy", 100, 265, 18.3, 1.2, 20.8, 0.0),
    ("Curd, low fat", "dairy", 100, 63, 5.3, 7.0, 1.6, 0.0),
    ("Milk, toned", "dairy", 200, 118, 6.2, 9.4, 6.0, 0.0),
    ("Egg, whole, boiled", "protein", 50, 78, 6.3, 0.6, 5.3, 0.0),
    ("Egg white, boiled", "protein", 33, 17, 3.6, 0.2, 0.1, 0.0),
    ("Chicken breast, grilled", "protein", 100, 165, 31.0, 0.0, 3.6, 0.0),
    ("Fish, rohu, cooked", "protein", 100, 97, 16.6, 0.0, 2.8, 0.0),
    ("Tofu, firm", "protein", 100, 144, 15.8, 2.8, 8.7, 2.3),
    ("Spinach, cooked", "vegetables", 100, 23, 3.0, 3.8, 0.3, 2.4),
    ("Mixed vegetable sabzi", "vegetables", 150, 120, 3.0, 14.0, 6.0, 4.5),
    ("Cucumber salad", "vegetables", 100, 16, 0.7, 3.6, 0.1, 0.5),
    ("Apple", "fruits", 150, 78, 0.4, 20.7, 0.3, 3.6),
    ("Banana", "fruits", 120, 107, 1.3, 27.4, 0.4, 3.1),
    ("Papaya", "fruits", 150, 65, 0.7, 16.4, 0.4, 2.6),
    ("Almonds", "nuts", 15, 87, 3.2, 3.3, 7.5, 1.9),
    ("Walnuts", "nuts", 15, 98, 2.3, 2.1, 9.8, 1.0),
    ("Sprouts salad", "legumes", 100, 70, 5.0, 11.0, 0.5, 3.5),
    ("Idli", "grains", 60, 78, 2.4, 16.0, 0.3, 0.8),
    ("Green tea", "beverages", 200, 2, 0.0, 0.0, 0.0, 0.0),
]


def seed_global_food_items(db):
    """Seed the shared food database.

    Global items have no organization and cannot be edited by practices.
    """
    added = 0
    for name, category, serving, kcal, protein, carbs, fats, fiber in GLOBAL_FOOD_ITEMS:
        existing = db.query(FoodItem).filter(
            FoodItem.org_id.is_(None),
            FoodItem.name == name,
        ).first()
        if existing:
            continue
        db.add(FoodItem(
            org_id=None,
            name=name,
            category=category,
            serving_size_g=serving,
            calories=kcal,
            protein_g=protein,
            carbs_g=carbs,
            fats_g=fats,
            fiber_g=fiber,
            is_verified=True,
        ))
        added += 1

    db.commit()
    print(f"Global food items seeded ({added} new).")


def seed_demo_organization(db):
    """Seed a demo practice so the dashboard and app have something to show."""
    existing = db.query(Organization).filter(Organization.name == "Demo Nutrition Clinic").first()
    if existing:
        print("Demo organization already exists.")
        return

    org = Organization(name="Demo Nutrition Clinic", email="hello@demo-clinic.test", city="Pune")
    db.add(org)
    db.flush()

    owner = User(
        org_id=org.id,
        idp_user_id="demo-owner",
        role=UserRole.OWNER,
        email="owner@demo-clinic.test",
        full_name="Demo Owner",
    )
    db.add(owner)
    db.flush()

    db.add(Client(
        org_id=org.id,
        primary_dietitian_id=owner.id,
        created_by=owner.id,
        full_name="Demo Client",
        phone="+919800000000",
        height_cm=165,
        current_weight_kg=72,
        target_weight_kg=65,
        referral_code="DEMO23",
    ))
    db.commit()
    print("Demo organization seeded.")


def run_seed():
    """Run all seed functions."""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_global_food_items(db)
        seed_demo_organization(db)
        print("Seed data complete!")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
