"""
Tests for offer storage and id generation.
"""

import json

import pytest

from offer_engine.api import OfferStore, SequenceIdGenerator, UuidIdGenerator, make_id_generator
from offer_engine.api.storage import OFFER
from offer_engine.core import (
    Address,
    Listing,
    PriorityProfile,
    UsageEventType,
    create_usage_event,
)

from conftest import SELLER, make_offer


def sample_listing(listing_id: str = "LST-1") -> Listing:
    return Listing(
        listing_id=listing_id,
        owner_id=SELLER,
        address=Address("1 Main St", "Austin", "TX", "78701"),
        asking_price=500_000.0,
        loan_balance=100_000.0,
    )


class TestIdGenerators:
    """Test pluggable id strategies."""

    def test_sequence_per_kind(self):
        ids = SequenceIdGenerator()
        assert ids.next_id("OFR") == "OFR-1"
        assert ids.next_id("OFR") == "OFR-2"
        assert ids.next_id("LST") == "LST-1"
        assert ids.state() == {"OFR": 2, "LST": 1}

    def test_uuid_ids_unique(self):
        ids = UuidIdGenerator()
        generated = {ids.next_id("OFR") for _ in range(50)}
        assert len(generated) == 50
        assert all(i.startswith("OFR-") for i in generated)

    def test_factory(self):
        assert isinstance(make_id_generator("uuid"), UuidIdGenerator)
        assert isinstance(make_id_generator("sequence"), SequenceIdGenerator)
        with pytest.raises(ValueError):
            make_id_generator("snowflake")


class TestInMemoryStore:
    """Test CRUD behaviour without persistence."""

    def test_add_and_get_offer(self, store):
        store.add_offer(make_offer("OFR-1"))
        assert store.get_offer("OFR-1").price == 700_000.0
        assert store.get_offer("OFR-404") is None

    def test_duplicate_offer_rejected(self, store):
        store.add_offer(make_offer("OFR-1"))
        with pytest.raises(ValueError):
            store.add_offer(make_offer("OFR-1"))

    def test_save_unknown_offer_rejected(self, store):
        with pytest.raises(ValueError):
            store.save_offer(make_offer("OFR-1"))

    def test_offers_filtered_by_listing(self, store):
        store.add_offer(make_offer("OFR-1"))
        store.add_offer(make_offer("OFR-2", listing_id="LST-2"))
        store.add_offer(make_offer("OFR-3"))
        assert [o.offer_id for o in store.list_offers("LST-1")] == ["OFR-1", "OFR-3"]
        assert list(store.offers_by_id("LST-2")) == ["OFR-2"]

    def test_listings_filtered_by_owner(self, store):
        store.add_listing(sample_listing("LST-1"))
        store.add_listing(Listing(
            listing_id="LST-2", owner_id="someone-else",
            address=Address(), asking_price=1.0,
        ))
        assert [l.listing_id for l in store.list_listings(SELLER)] == ["LST-1"]
        assert len(store.list_listings()) == 2

    def test_pending_usage_events(self, store):
        event = create_usage_event("USG-1", SELLER, UsageEventType.OFFER_CREATION)
        store.add_usage_event(event)
        assert store.pending_usage_events() == [event]
        event.mark_processed("ch_1")
        store.save_usage_event(event)
        assert store.pending_usage_events() == []

    def test_count(self, store):
        store.add_listing(sample_listing())
        store.add_offer(make_offer("OFR-1"))
        assert store.count() == {"listings": 1, "offers": 1, "usage_events": 0}


class TestPersistence:
    """Test JSON file round trip."""

    def test_reload_from_file(self, tmp_path):
        path = tmp_path / "offers.json"
        store = OfferStore(str(path))
        store.add_listing(sample_listing())
        store.save_priorities(PriorityProfile(listing_id="LST-1", offer_price=9))
        store.add_offer(make_offer(store.generate_id(OFFER)))
        store.add_usage_event(create_usage_event("USG-1", SELLER, UsageEventType.DOCUMENT_EXTRACTION))

        reloaded = OfferStore(str(path))
        assert reloaded.get_listing("LST-1").loan_balance == 100_000.0
        assert reloaded.get_priorities("LST-1").offer_price == 9
        assert reloaded.get_offer("OFR-1").overall_score == 113
        assert reloaded.get_usage_event("USG-1").amount == 2.50

    def test_sequence_continues_after_reload(self, tmp_path):
        path = tmp_path / "offers.json"
        store = OfferStore(str(path))
        store.add_offer(make_offer(store.generate_id(OFFER)))

        reloaded = OfferStore(str(path))
        assert reloaded.generate_id(OFFER) == "OFR-2"

    def test_file_layout(self, tmp_path):
        path = tmp_path / "offers.json"
        store = OfferStore(str(path))
        store.add_offer(make_offer("OFR-1"))
        data = json.loads(path.read_text())
        assert data["version"] == "1.0"
        assert data["offers"][0]["offer_id"] == "OFR-1"

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "offers.json"
        path.write_text("{not json")
        store = OfferStore(str(path))
        assert store.count()["offers"] == 0
