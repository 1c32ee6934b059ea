"""Tests for referral codes, rewards and the admin referral views."""

import pytest

from dietconnect.services.referral_service import (
    REFERRAL_ALPHABET,
    free_months_available,
    referrals_until_next_reward,
)

from conftest import client_headers, staff_headers


class TestReferralHelpers:
    """Tests for reward arithmetic."""

    @pytest.mark.parametrize("count,remaining", [(0, 3), (1, 2), (2, 1), (3, 3), (7, 2)])
    def test_referrals_until_next_reward(self, count, remaining):
        assert referrals_until_next_reward(count) == remaining

    def test_free_months_available(self):
        assert free_months_available(None) == 0


class TestClientReferrals:
    """Tests for the client app's referral endpoints."""

    def test_referral_code_and_share_link(self, client, make_client):
        record = make_client(referral_code="ABC234")
        response = client.get("/client/referral/code", headers=client_headers(record))
        assert response.status_code == 200
        data = response.json()
        assert data["referral_code"] == "ABC234"
        assert "Green Plate Nutrition" in data["share_message"]
        assert "ABC234" in data["share_message"]
        assert data["whatsapp_link"].startswith("https://wa.me/?text=")
        assert " " not in data["whatsapp_link"]

    def test_missing_code_is_generated(self, client, db_session, make_client):
        record = make_client(referral_code=None)
        data = client.get("/client/referral/code", headers=client_headers(record)).json()
        code = data["referral_code"]
        assert len(code) == 6
        assert all(ch in REFERRAL_ALPHABET for ch in code)

        db_session.refresh(record)
        assert record.referral_code == code

    def test_stats_count_referrals(self, client, make_client):
        referrer = make_client("Priya Nair")
        for _ in range(3):
            make_client(referred_by_client_id=referrer.id)

        response = client.get("/client/referral/stats", headers=client_headers(referrer))
        assert response.status_code == 200
        data = response.json()
        assert data["referral_count"] == 3
        assert data["free_months_earned"] == 1
        assert data["free_months_available"] == 1
        assert data["referrals_until_next_reward"] == 3
        assert len(data["referred_clients"]) == 3

    def test_stats_without_referrals(self, client, make_client):
        record = make_client()
        data = client.get("/client/referral/stats", headers=client_headers(record)).json()
        assert data["referral_count"] == 0
        assert data["free_months_available"] == 0
        assert data["referred_clients"] == []

    def test_validate_code(self, client, make_client):
        referrer = make_client("Priya Nair", referral_code="PRIYA2")
        record = make_client(referral_code="SELF22")
        headers = client_headers(record)

        response = client.get("/client/referral/validate/priya2", headers=headers)
        assert response.json() == {"valid": True, "referrer_name": referrer.full_name}

        own = client.get("/client/referral/validate/SELF22", headers=headers)
        assert own.json()["valid"] is False

        unknown = client.get("/client/referral/validate/ZZZZZZ", headers=headers)
        assert unknown.json()["valid"] is False

    def test_validate_code_length(self, client, make_client):
        record = make_client()
        response = client.get("/client/referral/validate/ABC", headers=client_headers(record))
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_CODE"


class TestAdminReferrals:
    """Tests for organization referral administration."""

    def refer(self, client, headers, code, count):
        for n in range(count):
            response = client.post(
                "/clients", json={"full_name": f"Friend {n}", "referral_code": code}, headers=headers
            )
            assert response.status_code == 201

    def test_stats(self, client, owner_headers, make_client):
        referrer = make_client("Priya Nair", referral_code="PRIYA2")
        self.refer(client, owner_headers, "PRIYA2", 3)

        response = client.get("/admin/referrals/stats", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_clients_with_codes"] == 4
        assert data["total_referred_clients"] == 3
        assert data["total_referrals"] == 3
        assert data["total_free_months_earned"] == 1
        assert data["total_free_months_used"] == 0
        assert data["source_breakdown"]["referral"] == 3
        assert data["source_breakdown"]["direct"] == 0
        assert data["top_referrers"][0]["client_id"] == referrer.id

    def test_stats_require_admin(self, client, make_staff):
        dietitian = make_staff()
        response = client.get("/admin/referrals/stats", headers=staff_headers(dietitian))
        assert response.status_code == 403

    def test_client_lists(self, client, owner_headers, make_client):
        referrer = make_client("Priya Nair", referral_code="PRIYA2")
        self.refer(client, owner_headers, "PRIYA2", 2)

        data = client.get("/admin/referrals/clients?source=referral", headers=owner_headers).json()
        assert data["meta"]["total"] == 2
        assert {c["referred_by_name"] for c in data["items"]} == {"Priya Nair"}

        data = client.get(
            f"/admin/referrals/clients/{referrer.id}/referrals", headers=owner_headers
        ).json()
        assert data["meta"]["total"] == 2

        summary = client.get("/admin/referrals/clients?page_size=100", headers=owner_headers).json()
        priya = next(c for c in summary["items"] if c["id"] == referrer.id)
        assert priya["referral_count"] == 2
        assert priya["free_months_available"] == 0

    def test_redeem_free_month(self, client, owner_headers, make_client):
        referrer = make_client(referral_code="PRIYA2")
        self.refer(client, owner_headers, "PRIYA2", 3)
        url = f"/admin/referrals/clients/{referrer.id}/redeem"

        response = client.post(url, headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == {
            "client_id": referrer.id,
            "free_months_used": 1,
            "free_months_available": 0,
        }

        response = client.post(url, headers=owner_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "NO_FREE_MONTHS"
