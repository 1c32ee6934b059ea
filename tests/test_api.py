"""Tests for staff API endpoints."""

from datetime import timedelta

from dietconnect.core.compliance import local_today, week_start
from dietconnect.models.models import (
    Client,
    MealLog,
    MealLogStatus,
    Notification,
    RecipientType,
    ReferralBenefit,
    UserRole,
)
from dietconnect.services.email_service import email_service
from dietconnect.services.storage_service import storage_service

from conftest import identity_headers, staff_headers


def today_iso() -> str:
    return local_today("Asia/Kolkata").isoformat()


class TestAppEndpoints:
    """Tests for root, health and error formatting."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_header(self, client):
        response = client.get("/", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_unknown_route_has_error_code(self, client):
        response = client.get("/does-not-exist")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_validation_error_format(self, client, owner_headers):
        response = client.post("/clients", json={}, headers=owner_headers)
        assert response.status_code == 422
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == "full_name" for d in data["details"])


class TestStaffAuth:
    """Tests for staff authentication and organizations."""

    def test_requires_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    def test_unregistered_user(self, client):
        response = client.get("/auth/me", headers=identity_headers("idp-stranger"))
        assert response.status_code == 401
        assert response.json()["code"] == "USER_NOT_REGISTERED"

    def test_me(self, client, owner, owner_headers):
        response = client.get("/auth/me", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == owner.id
        assert data["role"] == "owner"
        assert data["organization"]["name"] == "Green Plate Nutrition"

    def test_inactive_user(self, client, db_session, make_staff):
        user = make_staff()
        user.is_active = False
        db_session.commit()
        response = client.get("/auth/me", headers=staff_headers(user))
        assert response.status_code == 403
        assert response.json()["code"] == "USER_INACTIVE"

    def test_create_organization(self, client, db_session):
        response = client.post(
            "/organizations",
            json={"name": "Sunrise Diet Clinic", "owner_full_name": "Kavya Rao", "city": "Mumbai"},
            headers=identity_headers("idp-founder", "Founder@Sunrise.test"),
        )
        assert response.status_code == 201
        data = response.json()
        assert data["organization"]["name"] == "Sunrise Diet Clinic"
        assert data["user"]["role"] == "owner"
        assert data["user"]["email"] == "founder@sunrise.test"

        me = client.get("/auth/me", headers=identity_headers("idp-founder"))
        assert me.status_code == 200

    def test_create_organization_twice(self, client, owner):
        response = client.post(
            "/organizations",
            json={"name": "Another Clinic", "owner_full_name": "Asha"},
            headers=staff_headers(owner),
        )
        assert response.status_code == 409
        assert response.json()["code"] == "USER_EXISTS"

    def test_duplicate_organization_name(self, client, org):
        response = client.post(
            "/organizations",
            json={"name": "green plate nutrition", "owner_full_name": "Copycat"},
            headers=identity_headers("idp-copycat", "copy@cat.test"),
        )
        assert response.status_code == 409
        assert response.json()["code"] == "ORG_EXISTS"

    def test_organization_counts(self, client, owner_headers, make_client, make_staff):
        make_staff()
        make_client()
        make_client()
        response = client.get("/organizations/current", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["client_count"] == 2
        assert response.json()["user_count"] == 2

    def test_dietitian_cannot_update_organization(self, client, make_staff):
        dietitian = make_staff(UserRole.DIETITIAN)
        response = client.patch(
            "/organizations/current", json={"city": "Delhi"}, headers=staff_headers(dietitian)
        )
        assert response.status_code == 403


class TestTeamEndpoints:
    """Tests for invitations and roles."""

    def test_invite_and_join(self, client, owner_headers):
        response = client.post(
            "/team/invite", json={"email": "Neha@GreenPlate.test"}, headers=owner_headers
        )
        assert response.status_code == 201
        invite = response.json()
        assert invite["email"] == "neha@greenplate.test"
        assert invite["role"] == "dietitian"
        token = invite["invite_url"].split("token=")[1]

        lookup = client.get(f"/team/invitations/{token}")
        assert lookup.status_code == 200
        assert lookup.json()["organization_name"] == "Green Plate Nutrition"

        joined = client.post(
            "/team/join",
            json={"token": token, "full_name": "Neha Sharma"},
            headers=identity_headers("idp-neha"),
        )
        assert joined.status_code == 201
        assert joined.json()["email"] == "neha@greenplate.test"

        team = client.get("/team", headers=owner_headers).json()
        assert len(team) == 2
        assert {m["initials"] for m in team} == {"AO", "NS"}

        # Invitations are single use
        again = client.get(f"/team/invitations/{token}")
        assert again.status_code == 400
        assert again.json()["code"] == "INVALID_INVITE"

    def test_cannot_invite_owner(self, client, owner_headers):
        response = client.post(
            "/team/invite", json={"email": "boss@greenplate.test", "role": "owner"}, headers=owner_headers
        )
        assert response.status_code == 422

    def test_dietitian_cannot_invite(self, client, make_staff):
        dietitian = make_staff()
        response = client.post(
            "/team/invite", json={"email": "x@greenplate.test"}, headers=staff_headers(dietitian)
        )
        assert response.status_code == 403

    def test_change_role(self, client, owner, owner_headers, make_staff):
        member = make_staff()
        response = client.patch(f"/team/{member.id}/role", json={"role": "admin"}, headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

        own = client.patch(f"/team/{owner.id}/role", json={"role": "admin"}, headers=owner_headers)
        assert own.status_code == 400
        assert own.json()["code"] == "CANNOT_CHANGE_OWN_ROLE"

    def test_remove_member(self, client, owner, make_staff):
        admin = make_staff(UserRole.ADMIN)
        member = make_staff()

        response = client.delete(f"/team/{member.id}", headers=staff_headers(admin))
        assert response.status_code == 200

        response = client.delete(f"/team/{owner.id}", headers=staff_headers(admin))
        assert response.status_code == 403

        response = client.delete(f"/team/{admin.id}", headers=staff_headers(admin))
        assert response.json()["code"] == "CANNOT_REMOVE_SELF"


class TestClientEndpoints:
    """Tests for client management."""

    def test_create_client(self, client, owner, owner_headers):
        response = client.post("/clients", json={
            "full_name": "Ravi Kumar",
            "email": "Ravi@Example.com",
            "phone": "+919811111111",
            "height_cm": 172,
            "allergies": ["peanuts"],
        }, headers=owner_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "ravi@example.com"
        assert data["primary_dietitian_id"] == owner.id
        assert len(data["referral_code"]) == 6
        assert data["allergies"] == ["peanuts"]

    def test_duplicate_email(self, client, owner_headers):
        payload = {"full_name": "Ravi", "email": "ravi@example.com"}
        assert client.post("/clients", json=payload, headers=owner_headers).status_code == 201
        response = client.post("/clients", json=payload, headers=owner_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "CLIENT_EXISTS"

    def test_client_limit(self, client, db_session, org, owner_headers, make_client):
        org.max_clients = 1
        db_session.commit()
        make_client()
        response = client.post("/clients", json={"full_name": "One too many"}, headers=owner_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "CLIENT_LIMIT_REACHED"

    def test_referral_code_credits_referrer(self, client, db_session, owner_headers, make_client):
        referrer = make_client(referral_code="ABC234")
        response = client.post(
            "/clients", json={"full_name": "Friend", "referral_code": "abc234"}, headers=owner_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["referred_by_client_id"] == referrer.id
        assert data["referral_source"] == "referral"

        benefit = db_session.query(ReferralBenefit).filter(ReferralBenefit.client_id == referrer.id).one()
        assert benefit.referral_count == 1

    def test_invalid_referral_code(self, client, owner_headers):
        response = client.post(
            "/clients", json={"full_name": "Friend", "referral_code": "NOPE22"}, headers=owner_headers
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REFERRAL_CODE"

    def test_dietitian_sees_only_own_clients(self, client, make_staff, make_client):
        dietitian = make_staff()
        mine = make_client("Mine", dietitian=dietitian)
        other = make_client("Not mine")

        response = client.get("/clients", headers=staff_headers(dietitian))
        data = response.json()
        assert data["meta"]["total"] == 1
        assert data["items"][0]["id"] == mine.id

        response = client.get(f"/clients/{other.id}", headers=staff_headers(dietitian))
        assert response.status_code == 404
        assert response.json()["code"] == "CLIENT_NOT_FOUND"

    def test_search_and_pagination(self, client, owner_headers, make_client):
        for name in ["Anita Desai", "Anil Kapoor", "Bharat Singh"]:
            make_client(name)
        response = client.get("/clients?search=ani&page_size=1", headers=owner_headers)
        data = response.json()
        assert data["meta"]["total"] == 2
        assert data["meta"]["total_pages"] == 2
        assert data["meta"]["has_next_page"] is True
        assert len(data["items"]) == 1

    def test_update_client(self, client, owner_headers, make_client):
        record = make_client()
        response = client.patch(
            f"/clients/{record.id}", json={"target_weight_kg": 62}, headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["target_weight_kg"] == 62

    def test_soft_delete(self, client, db_session, owner_headers, make_client):
        record = make_client()
        response = client.delete(f"/clients/{record.id}", headers=owner_headers)
        assert response.status_code == 200

        assert client.get(f"/clients/{record.id}", headers=owner_headers).status_code == 404
        assert db_session.query(Client).filter(Client.id == record.id).one().deleted_at is not None

    def test_dietitian_cannot_delete(self, client, make_staff, make_client):
        dietitian = make_staff()
        record = make_client(dietitian=dietitian)
        response = client.delete(f"/clients/{record.id}", headers=staff_headers(dietitian))
        assert response.status_code == 403

    def test_weight_logs(self, client, db_session, owner_headers, make_client):
        record = make_client(height_cm=170)
        url = f"/clients/{record.id}/weight-logs"

        first = client.post(url, json={"weight_kg": 80, "log_date": "2024-05-01"}, headers=owner_headers)
        assert first.status_code == 201
        assert first.json()["weight_change_from_previous"] is None

        second = client.post(url, json={"weight_kg": 76, "log_date": "2024-05-15"}, headers=owner_headers)
        data = second.json()
        assert data["weight_change_from_previous"] == -4.0
        assert data["is_outlier"] is True
        assert data["bmi"] == 26.3

        listing = client.get(url, headers=owner_headers).json()
        assert listing["meta"]["total"] == 2
        assert listing["items"][0]["log_date"] == "2024-05-15"
        assert listing["summary"]["total_weight_loss_kg"] == 4.0
        assert listing["summary"]["average_loss_per_week_kg"] == 2.0

        db_session.refresh(record)
        assert record.current_weight_kg == 76

    def test_weight_log_same_day_is_replaced(self, client, owner_headers, make_client):
        record = make_client()
        url = f"/clients/{record.id}/weight-logs"
        client.post(url, json={"weight_kg": 80, "log_date": "2024-05-01"}, headers=owner_headers)
        client.post(url, json={"weight_kg": 79.5, "log_date": "2024-05-01"}, headers=owner_headers)

        listing = client.get(url, headers=owner_headers).json()
        assert listing["meta"]["total"] == 1
        assert listing["items"][0]["weight_kg"] == 79.5


class TestFoodItemEndpoints:
    """Tests for the food library."""

    def test_create_and_list(self, client, org, owner_headers, food):
        response = client.post("/food-items", json={
            "name": "Paneer tikka",
            "category": "protein",
            "serving_size_g": 150,
            "calories": 250,
            "protein_g": 18,
        }, headers=owner_headers)
        assert response.status_code == 201
        assert response.json()["org_id"] == org.id

        listing = client.get("/food-items", headers=owner_headers).json()
        assert listing["meta"]["total"] == 2

        search = client.get("/food-items?search=paneer", headers=owner_headers).json()
        assert [f["name"] for f in search["items"]] == ["Paneer tikka"]

    def test_global_food_is_read_only(self, client, owner_headers, food):
        response = client.patch(f"/food-items/{food.id}", json={"calories": 1}, headers=owner_headers)
        assert response.status_code == 403
        assert response.json()["code"] == "GLOBAL_FOOD_READONLY"

    def test_food_in_use_cannot_be_deleted(self, client, owner_headers, make_client):
        food_id = client.post(
            "/food-items", json={"name": "Oats", "calories": 380}, headers=owner_headers
        ).json()["id"]
        record = make_client()
        client.post("/diet-plans", json={
            "client_id": record.id,
            "name": "Oats plan",
            "meals": [{"meal_type": "breakfast", "food_items": [{"food_id": food_id, "quantity_g": 50}]}],
        }, headers=owner_headers)

        response = client.delete(f"/food-items/{food_id}", headers=owner_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "FOOD_IN_USE"


class TestDietPlanEndpoints:
    """Tests for diet plans, templates and exports."""

    def create_plan(self, client, headers, client_id, food_id, name="Summer plan"):
        response = client.post("/diet-plans", json={
            "client_id": client_id,
            "name": name,
            "start_date": "2024-06-01",
            "end_date": "2024-06-30",
            "target_calories": 1600,
            "meals": [{
                "meal_type": "breakfast",
                "time_of_day": "08:00",
                "food_items": [
                    {"food_id": food_id, "quantity_g": 150},
                    {"food_id": food_id, "quantity_g": 100, "option_group": 1, "option_label": "Light"},
                ],
            }],
        }, headers=headers)
        assert response.status_code == 201
        return response.json()

    def test_create_plan_computes_totals(self, client, owner_headers, make_client, food):
        record = make_client("Ravi")
        plan = self.create_plan(client, owner_headers, record.id, food.id)

        assert plan["status"] == "draft"
        assert plan["client_name"] == "Ravi"
        assert plan["meal_count"] == 1
        meal = plan["meals"][0]
        # Totals reflect option group 0 only: 150 g of rice
        assert meal["total_calories"] == 195
        assert meal["food_items"][0]["calories"] == 195
        assert meal["food_items"][1]["calories"] == 130

    def test_plan_requires_client_unless_template(self, client, owner_headers):
        response = client.post("/diet-plans", json={"name": "Orphan"}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "CLIENT_ID_REQUIRED"

    def test_invalid_date_range(self, client, owner_headers, make_client):
        record = make_client()
        response = client.post("/diet-plans", json={
            "client_id": record.id,
            "name": "Backwards",
            "start_date": "2024-06-30",
            "end_date": "2024-06-01",
        }, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATE_RANGE"

    def test_unknown_food(self, client, owner_headers, make_client):
        record = make_client()
        response = client.post("/diet-plans", json={
            "client_id": record.id,
            "name": "Mystery",
            "meals": [{"meal_type": "lunch", "food_items": [{"food_id": "missing", "quantity_g": 10}]}],
        }, headers=owner_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "FOOD_NOT_FOUND"

    def test_publish_keeps_one_active_plan(self, client, db_session, owner_headers, make_client, food):
        record = make_client()
        first = self.create_plan(client, owner_headers, record.id, food.id, "First")
        second = self.create_plan(client, owner_headers, record.id, food.id, "Second")

        response = client.post(f"/diet-plans/{first['id']}/publish", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert response.json()["published_at"] is not None

        client.post(f"/diet-plans/{second['id']}/publish", headers=owner_headers)
        assert client.get(f"/diet-plans/{first['id']}", headers=owner_headers).json()["status"] == "completed"
        assert client.get(f"/diet-plans/{second['id']}", headers=owner_headers).json()["status"] == "active"

        notifications = db_session.query(Notification).filter(
            Notification.recipient_id == record.id,
            Notification.recipient_type == RecipientType.CLIENT,
        ).all()
        assert len(notifications) == 2
        assert notifications[0].category == "diet_plan"

    def test_status_cannot_be_set_active_directly(self, client, owner_headers, make_client, food):
        record = make_client()
        plan = self.create_plan(client, owner_headers, record.id, food.id)
        response = client.patch(f"/diet-plans/{plan['id']}", json={"status": "active"}, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "USE_PUBLISH"

    def test_template_assignment(self, client, owner_headers, make_client, food):
        template = client.post("/diet-plans", json={
            "name": "Diabetic friendly",
            "is_template": True,
            "template_category": "diabetes",
            "meals": [
                {"meal_type": "breakfast", "food_items": [{"food_id": food.id, "quantity_g": 100}]},
                {"meal_type": "dinner", "food_items": [{"food_id": food.id, "quantity_g": 200}]},
            ],
        }, headers=owner_headers).json()
        record = make_client("Sita")

        publish = client.post(f"/diet-plans/{template['id']}/publish", headers=owner_headers)
        assert publish.status_code == 400
        assert publish.json()["code"] == "TEMPLATE_NOT_PUBLISHABLE"

        response = client.post(
            f"/diet-plans/{template['id']}/assign",
            json={"client_id": record.id, "start_date": "2024-07-01"},
            headers=owner_headers,
        )
        assert response.status_code == 201
        plan = response.json()
        assert plan["is_template"] is False
        assert plan["client_id"] == record.id
        assert plan["status"] == "draft"
        assert plan["name"] == "Diabetic friendly - Sita"
        assert plan["meal_count"] == 2
        assert sorted(m["total_calories"] for m in plan["meals"]) == [130, 260]

        templates = client.get("/diet-plans?is_template=true", headers=owner_headers).json()
        assert templates["meta"]["total"] == 1
        assert templates["items"][0]["meal_count"] == 2

    def test_delete_plan(self, client, owner_headers, make_client, food):
        record = make_client()
        plan = self.create_plan(client, owner_headers, record.id, food.id)
        assert client.delete(f"/diet-plans/{plan['id']}", headers=owner_headers).status_code == 200
        response = client.get(f"/diet-plans/{plan['id']}", headers=owner_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "PLAN_NOT_FOUND"

    def test_pdf_export(self, client, owner_headers, make_client, food):
        record = make_client("Ravi <script>")
        plan = self.create_plan(client, owner_headers, record.id, food.id)
        response = client.get(f"/diet-plans/{plan['id']}/pdf", headers=owner_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_email_plan(self, client, owner_headers, make_client, food, monkeypatch):
        sent = []
        monkeypatch.setattr(
            email_service, "send",
            lambda to, subject, html, attachment=None: sent.append((to, subject, attachment)) or True,
        )
        record = make_client(email="ravi@example.com")
        plan = self.create_plan(client, owner_headers, record.id, food.id)

        response = client.post(f"/diet-plans/{plan['id']}/email", headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == {"sent": True, "recipient": "ravi@example.com"}
        assert sent[0][0] == "ravi@example.com"
        assert sent[0][2][2] == "application/pdf"

    def test_email_plan_failure(self, client, owner_headers, make_client, food, monkeypatch):
        monkeypatch.setattr(email_service, "send", lambda *args, **kwargs: False)
        record = make_client(email="ravi@example.com")
        plan = self.create_plan(client, owner_headers, record.id, food.id)
        response = client.post(f"/diet-plans/{plan['id']}/email", headers=owner_headers)
        assert response.status_code == 502
        assert response.json()["code"] == "EMAIL_FAILED"

    def test_email_plan_without_client_email(self, client, owner_headers, make_client, food):
        record = make_client()
        plan = self.create_plan(client, owner_headers, record.id, food.id)
        response = client.post(f"/diet-plans/{plan['id']}/email", headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "CLIENT_EMAIL_MISSING"


class TestMealEndpoints:
    """Tests for editing meals inside a plan."""

    def test_meal_food_items_update_totals(self, client, owner_headers, make_client, make_active_plan, food):
        plan = make_active_plan(make_client())
        response = client.post("/meals", json={
            "plan_id": plan.id,
            "meal_type": "lunch",
            "day_of_week": 2,
            "food_items": [{"food_id": food.id, "quantity_g": 100}],
        }, headers=owner_headers)
        assert response.status_code == 201
        meal = response.json()
        assert meal["total_calories"] == 130
        item_id = meal["food_items"][0]["id"]

        updated = client.patch(
            f"/meals/{meal['id']}/food-items/{item_id}", json={"quantity_g": 300}, headers=owner_headers
        ).json()
        assert updated["total_calories"] == 390

        added = client.post(
            f"/meals/{meal['id']}/food-items", json={"food_id": food.id, "quantity_g": 50}, headers=owner_headers
        )
        assert added.status_code == 201
        assert added.json()["total_calories"] == 455

        removed = client.delete(f"/meals/{meal['id']}/food-items/{item_id}", headers=owner_headers).json()
        assert removed["total_calories"] == 65
        assert len(removed["food_items"]) == 1

    def test_meal_with_logs_cannot_be_deleted(self, client, db_session, owner_headers, make_client, make_active_plan):
        record = make_client()
        plan = make_active_plan(record)
        meal = plan.meals[0]
        db_session.add(MealLog(
            org_id=record.org_id, client_id=record.id, meal_id=meal.id,
            scheduled_date=local_today("Asia/Kolkata"),
        ))
        db_session.commit()

        response = client.delete(f"/meals/{meal.id}", headers=owner_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "MEAL_HAS_LOGS"


class TestMealLogEndpoints:
    """Tests for meal logging, review and compliance."""

    def create_log(self, client, headers, record, meal):
        response = client.post("/meal-logs", json={
            "client_id": record.id,
            "meal_id": meal.id,
            "scheduled_date": today_iso(),
        }, headers=headers)
        assert response.status_code == 201
        return response.json()

    def test_create_log(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        meal = make_active_plan(record).meals[0]
        log = self.create_log(client, owner_headers, record, meal)
        assert log["status"] == "pending"
        assert log["compliance_score"] is None

        duplicate = client.post("/meal-logs", json={
            "client_id": record.id, "meal_id": meal.id, "scheduled_date": today_iso(),
        }, headers=owner_headers)
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "MEAL_LOG_EXISTS"

    def test_meal_must_be_in_active_plan(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        other_meal = make_active_plan(make_client()).meals[0]
        response = client.post("/meal-logs", json={
            "client_id": record.id, "meal_id": other_meal.id, "scheduled_date": today_iso(),
        }, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "MEAL_NOT_IN_ACTIVE_PLAN"

    def test_logging_scores_compliance(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])

        response = client.patch(f"/meal-logs/{log['id']}", json={"status": "eaten"}, headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["logged_at"] is not None
        assert data["compliance_score"] == 85
        assert data["compliance_color"] == "GREEN"
        assert data["compliance_issues"] == ["No photo uploaded"]

    def test_relogging_same_status_keeps_logged_at(
        self, client, db_session, owner_headers, make_client, make_active_plan
    ):
        record = make_client()
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])
        url = f"/meal-logs/{log['id']}"
        client.patch(url, json={"status": "eaten"}, headers=owner_headers)

        stored = db_session.get(MealLog, log["id"])
        earlier = stored.logged_at - timedelta(hours=6)
        stored.logged_at = earlier
        db_session.commit()

        response = client.patch(url, json={"status": "eaten", "client_notes": "With curd"}, headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["compliance_score"] == 85
        db_session.refresh(stored)
        assert stored.logged_at == earlier
        assert stored.client_notes == "With curd"

        response = client.patch(url, json={"status": "skipped"}, headers=owner_headers)
        assert response.json()["compliance_score"] == 0
        db_session.refresh(stored)
        assert stored.logged_at > earlier

        skipped = client.patch(f"/meal-logs/{log['id']}", json={"status": "skipped"}, headers=owner_headers)
        assert skipped.json()["compliance_score"] == 0
        assert skipped.json()["compliance_color"] == "RED"

    def test_review_adds_bonus_and_notifies(self, client, db_session, owner, owner_headers, make_client, make_active_plan):
        record = make_client()
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])
        client.patch(f"/meal-logs/{log['id']}", json={"status": "eaten"}, headers=owner_headers)

        pending = client.get("/meal-logs?review_status=pending", headers=owner_headers).json()
        assert pending["meta"]["total"] == 1

        response = client.patch(
            f"/meal-logs/{log['id']}/review", json={"dietitian_feedback": "Great portion control"},
            headers=owner_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["reviewed_by"] == owner.id
        assert data["compliance_score"] == 95

        pending = client.get("/meal-logs?review_status=pending", headers=owner_headers).json()
        assert pending["meta"]["total"] == 0

        notification = db_session.query(Notification).filter(
            Notification.recipient_id == record.id,
            Notification.category == "meal_review",
        ).one()
        assert notification.message == "Great portion control"

    def test_photo_upload(self, client, owner_headers, make_client, make_active_plan, monkeypatch):
        uploads = []

        def fake_upload(data, key, content_type):
            uploads.append((key, content_type))
            return f"https://cdn.test/{key}"

        monkeypatch.setattr(storage_service, "upload_bytes", fake_upload)
        record = make_client()
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])
        client.patch(f"/meal-logs/{log['id']}", json={"status": "eaten"}, headers=owner_headers)

        response = client.post(
            f"/meal-logs/{log['id']}/photo",
            files={"file": ("lunch.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
            headers=owner_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["meal_photo_url"].startswith("https://cdn.test/meal-photos/")
        assert data["photo_uploaded_at"] is not None
        assert data["compliance_score"] == 100
        assert uploads[0][1] == "image/jpeg"

    def test_photo_upload_rejects_other_types(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])
        response = client.post(
            f"/meal-logs/{log['id']}/photo",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=owner_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_TYPE"

    def test_log_detail_has_options(self, client, owner_headers, make_client, make_active_plan):
        record = make_client("Ravi")
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])
        detail = client.get(f"/meal-logs/{log['id']}", headers=owner_headers).json()
        assert detail["client_name"] == "Ravi"
        assert detail["meal_type"] == "breakfast"
        assert len(detail["options"]) == 1
        assert detail["options"][0]["calories"] == 260

    def test_recalculate_compliance(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        log = self.create_log(client, owner_headers, record, make_active_plan(record).meals[0])
        response = client.post(f"/meal-logs/{log['id']}/compliance", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["issues"] == ["Meal not logged yet", "No photo uploaded", "Foods not confirmed"]


class TestComplianceEndpoints:
    """Tests for daily, weekly and history adherence."""

    def log_eaten(self, client, headers, record, meal):
        log = client.post("/meal-logs", json={
            "client_id": record.id, "meal_id": meal.id, "scheduled_date": today_iso(),
        }, headers=headers).json()
        client.patch(f"/meal-logs/{log['id']}", json={"status": "eaten"}, headers=headers)
        return log

    def test_daily(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        self.log_eaten(client, owner_headers, record, make_active_plan(record).meals[0])

        response = client.get(
            f"/clients/{record.id}/compliance/daily?date={today_iso()}", headers=owner_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["meals_planned"] == 1
        assert data["meals_logged"] == 1
        assert data["score"] == 85
        assert data["color"] == "GREEN"
        assert data["meal_breakdown"][0]["meal_type"] == "breakfast"
        assert data["meal_breakdown"][0]["meal_name"] == "Rice bowl"
        assert data["meal_breakdown"][0]["issues"] == ["No photo uploaded"]

    def test_weekly(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        self.log_eaten(client, owner_headers, record, make_active_plan(record).meals[0])

        data = client.get(f"/clients/{record.id}/compliance/weekly", headers=owner_headers).json()
        assert len(data["days"]) == 7
        assert data["average_score"] == 85
        assert data["trend"] == "stable"
        assert data["previous_week_average"] is None

    def test_weekly_without_logs_this_week_is_stable(
        self, client, db_session, owner_headers, make_client, make_active_plan
    ):
        record = make_client()
        meal = make_active_plan(record).meals[0]
        db_session.add(MealLog(
            org_id=record.org_id, client_id=record.id, meal_id=meal.id,
            scheduled_date=week_start(local_today("Asia/Kolkata")) - timedelta(days=3),
            status=MealLogStatus.EATEN, compliance_score=90,
        ))
        db_session.commit()

        data = client.get(f"/clients/{record.id}/compliance/weekly", headers=owner_headers).json()
        assert data["average_score"] == 0
        assert data["previous_week_average"] == 90
        assert data["trend"] == "stable"

    def test_history(self, client, owner_headers, make_client, make_active_plan):
        record = make_client()
        self.log_eaten(client, owner_headers, record, make_active_plan(record).meals[0])

        data = client.get(f"/clients/{record.id}/compliance/history?days=7", headers=owner_headers).json()
        assert data["days"] == 7
        assert len(data["history"]) == 1
        assert data["best_day"]["score"] == 85


class TestDashboardAndNotifications:
    """Tests for the dashboard summary and staff notifications."""

    def test_dashboard_stats(self, client, db_session, owner_headers, make_client, make_active_plan):
        record = make_client()
        meal = make_active_plan(record).meals[0]
        db_session.add(MealLog(
            org_id=record.org_id, client_id=record.id, meal_id=meal.id,
            scheduled_date=local_today("Asia/Kolkata"), status=MealLogStatus.EATEN,
        ))
        db_session.commit()

        data = client.get("/dashboard/stats", headers=owner_headers).json()
        assert data["total_clients"] == 1
        assert data["pending_reviews"] == 1
        assert data["active_plans"] == 1
        assert data["adherence_rate_30d"] == 100
        assert len(data["weekly_adherence"]) == 7
        assert data["weekly_adherence"][-1]["adherence"] == 100
        assert data["pending_meal_logs"][0]["client_id"] == record.id

    def test_device_token_and_inbox(self, client, db_session, owner, owner_headers):
        response = client.post(
            "/notifications/device-token", json={"token": "ExponentPushToken[abc]"}, headers=owner_headers
        )
        assert response.status_code == 200
        db_session.refresh(owner)
        assert owner.push_tokens == ["ExponentPushToken[abc]"]

        db_session.add(Notification(
            org_id=owner.org_id, recipient_id=owner.id, recipient_type=RecipientType.USER,
            category="system", title="Welcome", message="Hello",
        ))
        db_session.commit()

        inbox = client.get("/notifications", headers=owner_headers).json()
        assert len(inbox) == 1
        read = client.patch(f"/notifications/{inbox[0]['id']}/read", headers=owner_headers).json()
        assert read["is_read"] is True

        assert client.get("/notifications?unread_only=true", headers=owner_headers).json() == []
