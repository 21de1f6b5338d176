"""Shared fixtures for offer engine tests."""

from datetime import datetime

import pytest

from offer_engine.api import OfferService, OfferStore
from offer_engine.core import BuyerType, Offer

SELLER = "seller-1"
OTHER_USER = "intruder-9"


class RecordingGateway:
    """Billing gateway double that records charges, or fails on demand."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.charged = []

    def charge(self, event):
        if self.fail:
            raise RuntimeError("payment provider unavailable")
        self.charged.append(event.event_id)
        return f"ch_{len(self.charged)}"


@pytest.fixture
def store():
    """In-memory store with sequential ids."""
    return OfferStore()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def service(store, gateway):
    return OfferService(store, billing_gateway=gateway)


@pytest.fixture
def listing(service):
    """Listing with a $200,000 outstanding loan."""
    return service.create_listing(SELLER, {
        "address": "742 Evergreen Terrace",
        "city": "Springfield",
        "state": "OR",
        "zip_code": "97403",
        "asking_price": 725_000,
        "loan_balance": 200_000,
    })


@pytest.fixture
def base_offer_input():
    """Price $700k, 3% commission, one contingency, 30-day close."""
    return {
        "buyer_name": "The Hendersons",
        "buyer_type": "pre_approved",
        "price": 700_000,
        "agent_commission": 3,
        "closing_timeline_days": 30,
        "contingencies": ["inspection"],
    }


def make_offer(offer_id: str, **overrides) -> Offer:
    """Build a stored-shape offer directly, bypassing the service."""
    values = dict(
        offer_id=offer_id,
        listing_id="LST-1",
        user_id=SELLER,
        buyer_name=f"Buyer {offer_id}",
        buyer_type=BuyerType.PRE_APPROVED,
        price=700_000.0,
        agent_commission=21_000.0,
        closing_timeline_days=30,
        contingencies=["inspection"],
        net_proceeds=479_000.0,
        risk_score=8,
        overall_score=113,
        created_at=datetime(2024, 1, 1, 12, 0, 0),
    )
    values.update(overrides)
    return Offer(**values)
