"""
Offer storage with in-memory and JSON file persistence.

Listings, priority profiles, offers and usage events live in flat
dictionaries keyed by id (insertion ordered). Ids come from a pluggable
generator so the same store works with sequential or UUID ids.
"""

import json
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from offer_engine.core import Listing, Offer, PriorityProfile, UsageEvent
from offer_engine.logging_config import get_logger

logger = get_logger(__name__)

# Id prefixes per entity kind
LISTING = "LST"
OFFER = "OFR"
USAGE_EVENT = "USG"


class SequenceIdGenerator:
    """Per-kind auto-increment ids (``OFR-1``, ``OFR-2``, ...)."""

    def __init__(self, counters: Optional[dict[str, int]] = None):
        self._counters: dict[str, int] = dict(counters or {})
        self._lock = threading.Lock()

    def next_id(self, kind: str) -> str:
        with self._lock:
            value = self._counters.get(kind, 0) + 1
            self._counters[kind] = value
        return f"{kind}-{value}"

    def state(self) -> dict[str, int]:
        return dict(self._counters)


class UuidIdGenerator:
    """Random ids (``OFR-3f9c2a71b4d0``)."""

    def next_id(self, kind: str) -> str:
        return f"{kind}-{uuid.uuid4().hex[:12]}"

    def state(self) -> dict[str, int]:
        return {}


def make_id_generator(strategy: str):
    """Build an id generator by strategy name (``sequence`` or ``uuid``)."""
    if strategy == "uuid":
        return UuidIdGenerator()
    if strategy == "sequence":
        return SequenceIdGenerator()
    raise ValueError(f"Unknown id strategy '{strategy}'")


class OfferStore:
    """
    In-memory offer storage with optional JSON file persistence.
    """

    def __init__(self, storage_path: Optional[str] = None, id_generator=None):
        """
        Initialize storage.

        Args:
            storage_path: Optional path to JSON file for persistence.
                         If None, storage is in-memory only.
            id_generator: Object with ``next_id(kind)``; defaults to sequential ids
        """
        self._listings: dict[str, Listing] = {}
        self._priorities: dict[str, PriorityProfile] = {}
        self._offers: dict[str, Offer] = {}
        self._usage_events: dict[str, UsageEvent] = {}
        self._storage_path = storage_path
        self._ids = id_generator or SequenceIdGenerator()

        self._write_lock = threading.RLock()
        self._listing_locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

        self._load()

    def _load(self) -> None:
        """Load records from JSON file if path is set."""
        if not self._storage_path:
            return

        path = Path(self._storage_path)
        if not path.exists():
            return

        try:
            with open(path, "r") as f:
                data = json.load(f)

            for item in data.get("listings", []):
                listing = Listing.from_dict(item)
                self._listings[listing.listing_id] = listing
            for item in data.get("priorities", []):
                profile = PriorityProfile.from_dict(item)
                self._priorities[profile.listing_id] = profile
            for item in data.get("offers", []):
                offer = Offer.from_dict(item)
                self._offers[offer.offer_id] = offer
            for item in data.get("usage_events", []):
                event = UsageEvent.from_dict(item)
                self._usage_events[event.event_id] = event

            if isinstance(self._ids, SequenceIdGenerator):
                self._ids = SequenceIdGenerator(data.get("id_counters", {}))

        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(
                "Could not load offer store",
                extra={"path": str(path), "error": str(e)},
            )

    def _save(self) -> None:
        """Save records to JSON file if path is set."""
        if not self._storage_path:
            return

        path = Path(self._storage_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": "1.0",
            "updated_at": datetime.now().isoformat(),
            "id_counters": self._ids.state(),
            "listings": [l.to_dict() for l in self._listings.values()],
            "priorities": [p.to_dict() for p in self._priorities.values()],
            "offers": [o.to_dict() for o in self._offers.values()],
            "usage_events": [e.to_dict() for e in self._usage_events.values()],
        }

        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    def generate_id(self, kind: str) -> str:
        """Generate a unique id for an entity kind."""
        return self._ids.next_id(kind)

    @contextmanager
    def listing_lock(self, listing_id: str) -> Iterator[None]:
        """Serialize version-graph writes for one listing."""
        with self._locks_guard:
            lock = self._listing_locks.setdefault(listing_id, threading.RLock())
        with lock:
            yield

    # Listings

    def add_listing(self, listing: Listing) -> Listing:
        """
        Store a new listing.

        Raises:
            ValueError: If listing_id already exists
        """
        with self._write_lock:
            if listing.listing_id in self._listings:
                raise ValueError(f"Listing '{listing.listing_id}' already exists")
            self._listings[listing.listing_id] = listing
            self._save()
        return listing

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        return self._listings.get(listing_id)

    def save_listing(self, listing: Listing) -> Listing:
        with self._write_lock:
            if listing.listing_id not in self._listings:
                raise ValueError(f"Listing '{listing.listing_id}' not found")
            self._listings[listing.listing_id] = listing
            self._save()
        return listing

    def list_listings(self, owner_id: Optional[str] = None) -> list[Listing]:
        return [
            l for l in self._listings.values()
            if owner_id is None or l.owner_id == owner_id
        ]

    # Priority profiles

    def get_priorities(self, listing_id: str) -> Optional[PriorityProfile]:
        return self._priorities.get(listing_id)

    def save_priorities(self, profile: PriorityProfile) -> PriorityProfile:
        with self._write_lock:
            self._priorities[profile.listing_id] = profile
            self._save()
        return profile

    # Offers

    def add_offer(self, offer: Offer) -> Offer:
        """
        Store a new offer.

        Raises:
            ValueError: If offer_id already exists
        """
        with self._write_lock:
            if offer.offer_id in self._offers:
                raise ValueError(f"Offer '{offer.offer_id}' already exists")
            self._offers[offer.offer_id] = offer
            self._save()
        return offer

    def get_offer(self, offer_id: str) -> Optional[Offer]:
        return self._offers.get(offer_id)

    def save_offer(self, offer: Offer) -> Offer:
        with self._write_lock:
            if offer.offer_id not in self._offers:
                raise ValueError(f"Offer '{offer.offer_id}' not found")
            self._offers[offer.offer_id] = offer
            self._save()
        return offer

    def list_offers(self, listing_id: str) -> list[Offer]:
        """Offers of one listing, in insertion order."""
        return [o for o in self._offers.values() if o.listing_id == listing_id]

    def offers_by_id(self, listing_id: Optional[str] = None) -> dict[str, Offer]:
        """Flat id -> offer mapping for version-graph traversal."""
        return {
            oid: o for oid, o in self._offers.items()
            if listing_id is None or o.listing_id == listing_id
        }

    # Usage events

    def add_usage_event(self, event: UsageEvent) -> UsageEvent:
        with self._write_lock:
            self._usage_events[event.event_id] = event
            self._save()
        return event

    def get_usage_event(self, event_id: str) -> Optional[UsageEvent]:
        return self._usage_events.get(event_id)

    def save_usage_event(self, event: UsageEvent) -> UsageEvent:
        with self._write_lock:
            self._usage_events[event.event_id] = event
            self._save()
        return event

    def list_usage_events(self, user_id: Optional[str] = None) -> list[UsageEvent]:
        return [
            e for e in self._usage_events.values()
            if user_id is None or e.user_id == user_id
        ]

    def pending_usage_events(self) -> list[UsageEvent]:
        return [e for e in self._usage_events.values() if not e.processed]

    def count(self) -> dict[str, int]:
        """Record counts per kind."""
        return {
            "listings": len(self._listings),
            "offers": len(self._offers),
            "usage_events": len(self._usage_events),
        }
