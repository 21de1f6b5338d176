"""
Tests for the counter-offer version graph.

Covers root/counter stamping, thread history, latest-version lookup,
malformed parent chains and the field-by-field diff.
"""

from datetime import datetime, timedelta

import pytest

from offer_engine.core import (
    NotFoundError,
    OfferGraphError,
    counter_fields,
    create_counter,
    create_root,
    diff_offers,
    find_root,
    has_counters,
    latest_version,
    offer_history,
    thread_heads,
)
from offer_engine.core.versioning import term_changes

from conftest import make_offer

T0 = datetime(2024, 5, 1, 10, 0, 0)


@pytest.fixture
def thread():
    """v1 -> v2 -> v3 plus an unrelated offer on the same listing."""
    v1 = make_offer("OFR-1", created_at=T0)
    v2 = create_counter(v1, make_offer("OFR-2", price=690_000.0, created_at=T0 + timedelta(hours=1)))
    v3 = create_counter(v2, make_offer("OFR-3", price=695_000.0, created_at=T0 + timedelta(hours=2)))
    other = make_offer("OFR-4", created_at=T0 + timedelta(minutes=30))
    return {o.offer_id: o for o in (v1, v2, v3, other)}


# --- Stamping ---

class TestCreateVersions:
    """Test root and counter stamping."""

    def test_root(self):
        root = create_root(make_offer("OFR-1", version_number=4, parent_offer_id="X"))
        assert root.version_number == 1
        assert root.parent_offer_id is None
        assert root.is_counter_offer is False
        assert root.is_root

    def test_counter_links_parent(self, thread):
        v2 = thread["OFR-2"]
        assert v2.parent_offer_id == "OFR-1"
        assert v2.version_number == 2
        assert v2.is_counter_offer is True
        assert thread["OFR-3"].version_number == 3

    def test_counter_must_share_listing(self):
        parent = make_offer("OFR-1")
        with pytest.raises(OfferGraphError):
            create_counter(parent, make_offer("OFR-2", listing_id="LST-2"))


class TestCounterFields:
    """Test inheritance of terms into a counter payload."""

    def test_unspecified_fields_inherit(self):
        parent = make_offer("OFR-1", notes="Needs quick close")
        payload = counter_fields(parent, {"price": 690_000})
        assert payload["price"] == 690_000
        assert payload["agent_commission"] == 21_000.0
        assert payload["commission_unit"] == "dollar"
        assert payload["contingencies"] == ["inspection"]
        assert payload["notes"] == "Needs quick close"

    def test_none_values_inherit(self):
        parent = make_offer("OFR-1")
        payload = counter_fields(parent, {"price": None, "closing_timeline_days": 14})
        assert payload["price"] == 700_000.0
        assert payload["closing_timeline_days"] == 14

    def test_new_commission_is_resolved_again(self):
        parent = make_offer("OFR-1", commission_was_percent=True, commission_percent=3.0)
        payload = counter_fields(parent, {"agent_commission": 2.5})
        assert payload["agent_commission"] == 2.5
        assert payload["commission_unit"] is None
        assert "commission_was_percent" not in payload

    def test_new_price_drops_stale_percent(self):
        parent = make_offer("OFR-1", commission_was_percent=True, commission_percent=3.0)
        payload = counter_fields(parent, {"price": 690_000})
        assert payload["agent_commission"] == 21_000.0
        assert payload["commission_was_percent"] is False
        assert payload["commission_percent"] is None

    def test_same_price_keeps_percent(self):
        parent = make_offer("OFR-1", commission_was_percent=True, commission_percent=3.0)
        payload = counter_fields(parent, {"price": 700_000.0, "closing_timeline_days": 14})
        assert payload["commission_was_percent"] is True
        assert payload["commission_percent"] == 3.0

    def test_lineage_keys_ignored(self):
        parent = make_offer("OFR-1")
        payload = counter_fields(parent, {"parent_offer_id": "OFR-99", "version_number": 9})
        assert "parent_offer_id" not in payload
        assert "version_number" not in payload


# --- Thread Traversal ---

class TestHistory:
    """Test thread history and root lookup."""

    @pytest.mark.parametrize("query", ["OFR-1", "OFR-2", "OFR-3"])
    def test_history_same_from_any_version(self, thread, query):
        history = offer_history(query, thread)
        assert [o.offer_id for o in history] == ["OFR-1", "OFR-2", "OFR-3"]
        assert [o.version_number for o in history] == [1, 2, 3]

    def test_unrelated_offer_has_own_history(self, thread):
        assert [o.offer_id for o in offer_history("OFR-4", thread)] == ["OFR-4"]

    def test_find_root(self, thread):
        assert find_root("OFR-3", thread).offer_id == "OFR-1"
        assert find_root("OFR-1", thread).offer_id == "OFR-1"

    def test_latest_version(self, thread):
        assert latest_version("OFR-1", thread).offer_id == "OFR-3"

    def test_has_counters(self, thread):
        assert has_counters("OFR-1", thread)
        assert has_counters("OFR-2", thread)
        assert not has_counters("OFR-3", thread)

    def test_thread_heads(self, thread):
        heads = thread_heads(thread)
        assert [o.offer_id for o in heads] == ["OFR-3", "OFR-4"]

    def test_missing_offer(self, thread):
        with pytest.raises(NotFoundError):
            offer_history("OFR-404", thread)


class TestMalformedGraph:
    """Test parent chains that cannot be resolved."""

    def test_cycle_detected(self):
        a = make_offer("OFR-1", parent_offer_id="OFR-2", version_number=2)
        b = make_offer("OFR-2", parent_offer_id="OFR-1", version_number=2)
        offers = {"OFR-1": a, "OFR-2": b}
        with pytest.raises(OfferGraphError):
            find_root("OFR-1", offers)
        assert thread_heads(offers) == []

    def test_self_parent_detected(self):
        a = make_offer("OFR-1", parent_offer_id="OFR-1")
        with pytest.raises(OfferGraphError):
            find_root("OFR-1", {"OFR-1": a})

    def test_dangling_parent(self):
        a = make_offer("OFR-2", parent_offer_id="OFR-gone", version_number=2)
        with pytest.raises(OfferGraphError):
            offer_history("OFR-2", {"OFR-2": a})

    def test_dangling_chain_leaves_other_threads_alone(self, thread):
        offers = {
            **thread,
            "OFR-9": make_offer("OFR-9", parent_offer_id="OFR-gone", version_number=2),
        }
        assert [o.offer_id for o in offer_history("OFR-1", offers)] == ["OFR-1", "OFR-2", "OFR-3"]
        assert [o.offer_id for o in offer_history("OFR-4", offers)] == ["OFR-4"]
        assert [o.offer_id for o in thread_heads(offers)] == ["OFR-3", "OFR-4"]

    def test_cycle_leaves_other_threads_alone(self, thread):
        offers = {
            **thread,
            "OFR-7": make_offer("OFR-7", parent_offer_id="OFR-8", version_number=2),
            "OFR-8": make_offer("OFR-8", parent_offer_id="OFR-7", version_number=2),
            "OFR-9": make_offer("OFR-9", parent_offer_id="OFR-7", version_number=3),
        }
        assert latest_version("OFR-2", offers).offer_id == "OFR-3"
        assert [o.offer_id for o in thread_heads(offers)] == ["OFR-3", "OFR-4"]
        with pytest.raises(OfferGraphError):
            offer_history("OFR-9", offers)


# --- Diff ---

class TestDiff:
    """Test the field-by-field comparison."""

    def test_price_and_net_change(self):
        original = make_offer("OFR-1")
        revised = make_offer("OFR-2", price=690_000.0, net_proceeds=469_000.0)
        diff = diff_offers(original, revised)
        assert diff.has_changes
        assert diff.changed_fields == ["price", "net_proceeds"]
        price = diff.changes[0]
        assert price.original == "$700,000"
        assert price.revised == "$690,000"
        assert "Price changed from $700,000 to $690,000" in diff.summary()

    def test_contingency_changes_ignore_case(self):
        original = make_offer("OFR-1", contingencies=["Inspection", "financing"])
        revised = make_offer("OFR-2", contingencies=["inspection", "appraisal"])
        diff = diff_offers(original, revised)
        assert diff.contingencies_added == ["appraisal"]
        assert diff.contingencies_removed == ["financing"]
        assert "contingencies" in diff.changed_fields

    def test_no_changes(self):
        diff = diff_offers(make_offer("OFR-1"), make_offer("OFR-2"))
        assert not diff.has_changes
        assert diff.summary().startswith("No changes detected")

    def test_to_dict(self):
        data = diff_offers(make_offer("OFR-1"), make_offer("OFR-2", notes="Firm")).to_dict()
        assert data["original_offer_id"] == "OFR-1"
        assert data["revised_offer_id"] == "OFR-2"
        assert data["changed_fields"] == ["notes"]


class TestTermChanges:
    """Test detection of edited terms."""

    def test_same_values_are_not_changes(self):
        offer = make_offer("OFR-1")
        assert term_changes(offer, {"price": 700_000, "contingencies": ["inspection"]}) == []

    def test_changed_values(self):
        offer = make_offer("OFR-1")
        changes = term_changes(offer, {"price": 710_000, "notes": "Updated", "needs_review": False})
        assert changes == ["price", "notes"]
