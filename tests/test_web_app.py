"""
Tests for the FastAPI surface.

The service dependency is overridden with an in-memory instance per test.
"""

import pytest
from fastapi.testclient import TestClient

from offer_engine.api import OfferService, OfferStore
from web.app import app, get_service

from conftest import OTHER_USER, SELLER, RecordingGateway

HEADERS = {"X-User-Id": SELLER}

LISTING_BODY = {
    "address": "742 Evergreen Terrace",
    "city": "Springfield",
    "state": "OR",
    "zipCode": "97403",
    "askingPrice": 725000,
    "loanBalance": 200000,
}


@pytest.fixture
def client():
    service = OfferService(OfferStore(), billing_gateway=RecordingGateway())
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def listing_id(client):
    response = client.post("/api/listings", json=LISTING_BODY, headers=HEADERS)
    assert response.status_code == 201
    return response.json()["listing_id"]


@pytest.fixture
def offer_id(client, listing_id):
    response = client.post("/api/offers", json={
        "listingId": listing_id,
        "buyerName": "The Hendersons",
        "buyerType": "pre_approved",
        "price": 700000,
        "agentCommission": 3,
        "closingTimelineDays": 30,
        "contingencies": ["inspection"],
    }, headers=HEADERS)
    assert response.status_code == 201
    return response.json()["offer_id"]


class TestMeta:
    """Test health and enum endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_enums(self, client):
        data = client.get("/api/enums").json()
        assert "cash" in data["buyer_types"]
        assert data["offer_statuses"] == ["pending", "accepted", "rejected", "withdrawn"]


class TestListingRoutes:
    """Test listing and priority endpoints."""

    def test_missing_user_header(self, client):
        assert client.get("/api/listings").status_code == 422

    def test_create_and_get(self, client, listing_id):
        data = client.get(f"/api/listings/{listing_id}", headers=HEADERS).json()
        assert data["asking_price"] == 725000
        assert data["address"]["zip_code"] == "97403"

    def test_other_user_forbidden(self, client, listing_id):
        response = client.get(f"/api/listings/{listing_id}", headers={"X-User-Id": OTHER_USER})
        assert response.status_code == 403

    def test_unknown_listing(self, client):
        assert client.get("/api/listings/LST-404", headers=HEADERS).status_code == 404

    def test_invalid_listing(self, client):
        response = client.post("/api/listings", json={**LISTING_BODY, "askingPrice": "abc"}, headers=HEADERS)
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "asking_price"

    def test_patch_listing(self, client, listing_id):
        response = client.patch(f"/api/listings/{listing_id}", json={"status": "sold"}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["status"] == "sold"

    def test_patch_rejects_other_fields(self, client, listing_id):
        response = client.patch(f"/api/listings/{listing_id}", json={"askingPrice": 1}, headers=HEADERS)
        assert response.status_code == 422

    def test_priorities(self, client, listing_id):
        url = f"/api/listings/{listing_id}/priorities"
        assert client.get(url, headers=HEADERS).json()["offer_price"] == 5
        response = client.patch(url, json={"offerPrice": 8}, headers=HEADERS)
        assert response.json()["offer_price"] == 8
        assert client.patch(url, json={"offerPrice": 0}, headers=HEADERS).status_code == 422


class TestOfferRoutes:
    """Test offer, counter-offer and comparison endpoints."""

    def test_created_offer_scores(self, client, offer_id):
        data = client.get(f"/api/offers/{offer_id}", headers=HEADERS).json()
        assert data["agent_commission"] == pytest.approx(21000)
        assert data["net_proceeds"] == pytest.approx(479000)
        assert data["risk_score"] == 8
        assert data["overall_score"] == 113
        assert data["display_score"] == 100

    def test_commission_type_wire_name(self, client, listing_id):
        response = client.post("/api/offers", json={
            "listingId": listing_id,
            "price": 700000,
            "agentCommission": 25,
            "commissionType": "percent",
            "closingTimelineDays": 30,
        }, headers=HEADERS)
        assert response.status_code == 201
        data = response.json()
        assert data["agent_commission"] == 175000
        assert data["commission_was_percent"] is True
        assert data["net_proceeds"] == 325000

    def test_invalid_offer(self, client, listing_id):
        response = client.post(
            "/api/offers", json={"listingId": listing_id, "price": 700000}, headers=HEADERS
        )
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "closing_timeline_days"

    def test_counter_history_and_diff(self, client, offer_id):
        response = client.post(f"/api/offers/{offer_id}/counter", json={"price": 690000}, headers=HEADERS)
        assert response.status_code == 201
        counter = response.json()
        assert counter["version_number"] == 2
        assert counter["parent_offer_id"] == offer_id
        assert counter["net_proceeds"] == pytest.approx(469000)

        history = client.get(f"/api/offers/{counter['offer_id']}/history", headers=HEADERS).json()
        assert [o["version_number"] for o in history["offers"]] == [1, 2]

        diff = client.get(f"/api/offers/{offer_id}/diff/{counter['offer_id']}", headers=HEADERS).json()
        assert diff["changed_fields"] == ["price", "net_proceeds"]

    def test_stale_counter_conflict(self, client, offer_id):
        client.post(f"/api/offers/{offer_id}/counter", json={"price": 690000}, headers=HEADERS)
        response = client.post(f"/api/offers/{offer_id}/counter", json={"price": 680000}, headers=HEADERS)
        assert response.status_code == 409

    def test_frozen_offer_conflict(self, client, offer_id):
        client.post(f"/api/offers/{offer_id}/counter", json={"price": 690000}, headers=HEADERS)
        response = client.patch(f"/api/offers/{offer_id}", json={"price": 705000}, headers=HEADERS)
        assert response.status_code == 409

    def test_counter_preview(self, client, offer_id):
        response = client.post(
            f"/api/offers/{offer_id}/counter/preview", json={"closingTimelineDays": 14}, headers=HEADERS
        )
        assert response.status_code == 200
        assert response.json()["diff"]["changed_fields"] == ["closing_timeline_days"]

    def test_status_transition(self, client, offer_id):
        url = f"/api/offers/{offer_id}/status"
        assert client.post(url, json={"status": "rejected"}, headers=HEADERS).status_code == 200
        assert client.post(url, json={"status": "accepted"}, headers=HEADERS).status_code == 409

    def test_comparison_and_insights(self, client, listing_id, offer_id):
        data = client.get(f"/api/listings/{listing_id}/comparison", headers=HEADERS).json()
        assert data["weighted"] is True
        assert data["offers"][0]["offer"]["offer_id"] == offer_id
        assert len(data["offers"][0]["weighted"]["factors"]) == 5

        insights = client.get(f"/api/listings/{listing_id}/insights", headers=HEADERS).json()
        assert insights["has_offers"] is True
        assert insights["recommendation"]["offer_id"] == offer_id

    def test_extract_fallback(self, client, listing_id):
        response = client.post("/api/offers/extract", json={
            "listingId": listing_id, "documentText": "scanned contract",
        }, headers=HEADERS)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "fallback"
        assert data["needs_review"] is True
        assert data["extracted_data"]["price"] == 725000

    def test_usage(self, client, offer_id):
        data = client.get("/api/usage", headers=HEADERS).json()
        assert data["count"] == 1
        assert data["usage_events"][0]["processed"] is True
