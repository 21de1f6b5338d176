"""
Offer version graph.

Offers and their counter-offers form negotiation threads through flat
parent pointers: the root has no parent, every counter points at the
version it answers and carries that version's number plus one. Offers
are stored in a flat mapping keyed by id; thread membership is found
by walking parent pointers to the root.

Counters are new records. A countered offer is never edited, so the
history and the diff view always show what was actually exchanged.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from offer_engine.logging_config import get_logger

from .errors import NotFoundError, OfferGraphError
from .offer import TERM_FIELDS, Offer

logger = get_logger(__name__)


@dataclass
class FieldChange:
    """One compared field between two versions."""

    field: str
    label: str
    original: Any
    revised: Any
    changed: bool

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "label": self.label,
            "original": self.original,
            "revised": self.revised,
            "changed": self.changed,
        }


@dataclass
class OfferDiff:
    """Field-by-field comparison of two offers in the same thread."""

    original_offer_id: str
    revised_offer_id: str
    changes: list[FieldChange] = field(default_factory=list)
    contingencies_added: list[str] = field(default_factory=list)
    contingencies_removed: list[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(c.changed for c in self.changes)

    @property
    def changed_fields(self) -> list[str]:
        return [c.field for c in self.changes if c.changed]

    def summary(self) -> str:
        """One-line description of what changed."""
        changed = [c for c in self.changes if c.changed]
        if not changed:
            return "No changes detected. The counter offer is identical to the original offer."
        parts = []
        for change in changed:
            if change.field == "contingencies":
                parts.append(_describe_contingency_change(
                    self.contingencies_added, self.contingencies_removed
                ))
            else:
                parts.append(f"{change.label} changed from {change.original} to {change.revised}")
        return "; ".join(parts)

    def to_dict(self) -> dict:
        return {
            "original_offer_id": self.original_offer_id,
            "revised_offer_id": self.revised_offer_id,
            "has_changes": self.has_changes,
            "changed_fields": self.changed_fields,
            "changes": [c.to_dict() for c in self.changes],
            "contingencies_added": self.contingencies_added,
            "contingencies_removed": self.contingencies_removed,
            "summary": self.summary(),
        }


def _describe_contingency_change(added: list[str], removed: list[str]) -> str:
    parts = []
    if added:
        parts.append(f"added {', '.join(added)}")
    if removed:
        parts.append(f"removed {', '.join(removed)}")
    return "Contingencies " + " and ".join(parts)


def create_root(offer: Offer) -> Offer:
    """Stamp an offer as the first version of a new thread."""
    return replace(offer, parent_offer_id=None, version_number=1, is_counter_offer=False)


def create_counter(parent: Offer, offer: Offer) -> Offer:
    """
    Stamp an offer as the counter to ``parent``.

    Raises:
        OfferGraphError: If the offer belongs to a different listing
    """
    if offer.listing_id != parent.listing_id:
        raise OfferGraphError(
            f"Counter for offer '{parent.offer_id}' must belong to listing '{parent.listing_id}'"
        )
    return replace(
        offer,
        parent_offer_id=parent.offer_id,
        version_number=parent.version_number + 1,
        is_counter_offer=True,
    )


def counter_fields(parent: Offer, changes: Mapping[str, Any]) -> dict:
    """
    Build the full term payload for a counter-offer.

    Fields not present in ``changes`` (or given as None) inherit from the
    parent. A changed commission is re-resolved by the normalizer, so the
    parent's dollar unit tag is dropped when a new commission is given.
    A new price with an inherited commission keeps the parent's dollars,
    which no longer match the parent's percent, so the percent is dropped.
    """
    payload = parent.terms()
    for name in TERM_FIELDS:
        if changes.get(name) is not None:
            payload[name] = changes[name]

    if changes.get("agent_commission") is not None:
        payload.pop("commission_was_percent", None)
        payload.pop("commission_percent", None)
        payload["commission_unit"] = changes.get("commission_unit")
    elif changes.get("price") is not None and changes["price"] != parent.price:
        payload["commission_was_percent"] = False
        payload["commission_percent"] = None

    return payload


def find_root(offer_id: str, offers: Mapping[str, Offer]) -> Offer:
    """
    Walk parent pointers from ``offer_id`` to the thread root.

    Raises:
        NotFoundError: If the starting offer does not exist
        OfferGraphError: If the chain loops or points at a missing offer
    """
    current = offers.get(offer_id)
    if current is None:
        raise NotFoundError("Offer", offer_id)

    visited = {current.offer_id}
    while current.parent_offer_id is not None:
        parent = offers.get(current.parent_offer_id)
        if parent is None:
            raise OfferGraphError(
                f"Offer '{current.offer_id}' points at missing parent '{current.parent_offer_id}'"
            )
        if parent.offer_id in visited:
            raise OfferGraphError(f"Cycle detected in parent chain at offer '{parent.offer_id}'")
        visited.add(parent.offer_id)
        current = parent

    return current


def _root_ids(offers: Mapping[str, Offer]) -> dict[str, str]:
    """
    Map every offer id to its root id, memoizing shared chains.

    Offers whose chain loops or points at a missing parent have no root;
    they are logged and left out so other threads still resolve.
    """
    roots: dict[str, str] = {}
    broken: set[str] = set()
    for offer_id in offers:
        if offer_id in roots or offer_id in broken:
            continue
        chain = []
        current = offers[offer_id]
        visited = set()
        root_id = None
        error = None
        while True:
            if current.offer_id in roots:
                root_id = roots[current.offer_id]
                break
            if current.offer_id in broken:
                error = f"Parent chain reaches malformed offer '{current.offer_id}'"
                break
            if current.offer_id in visited:
                error = f"Cycle detected in parent chain at offer '{current.offer_id}'"
                break
            visited.add(current.offer_id)
            chain.append(current.offer_id)
            if current.parent_offer_id is None:
                root_id = current.offer_id
                break
            parent = offers.get(current.parent_offer_id)
            if parent is None:
                error = f"Offer '{current.offer_id}' points at missing parent '{current.parent_offer_id}'"
                break
            current = parent

        if root_id is None:
            broken.update(chain)
            logger.warning(
                "Skipping offers with a malformed parent chain",
                extra={"offer_ids": chain, "error": error},
            )
            continue
        for member in chain:
            roots[member] = root_id
    return roots


def offer_history(offer_id: str, offers: Mapping[str, Offer]) -> list[Offer]:
    """
    Return every version in the thread containing ``offer_id``.

    The result is ordered ascending by version number and is the same
    whichever version is queried.

    Raises:
        NotFoundError: If ``offer_id`` does not exist
        OfferGraphError: If the chain from ``offer_id`` to its root is broken
    """
    root = find_root(offer_id, offers)
    root_ids = _thread_members(root, offers)
    thread = [offers[member] for member in root_ids]
    return sorted(thread, key=lambda o: (o.version_number, o.created_at))


def _thread_members(root: Offer, offers: Mapping[str, Offer]) -> list[str]:
    listing_offers = {
        oid: o for oid, o in offers.items() if o.listing_id == root.listing_id
    }
    roots = _root_ids(listing_offers)
    return [oid for oid, rid in roots.items() if rid == root.offer_id]


def latest_version(offer_id: str, offers: Mapping[str, Offer]) -> Offer:
    """Return the highest version in the thread containing ``offer_id``."""
    return offer_history(offer_id, offers)[-1]


def has_counters(offer_id: str, offers: Mapping[str, Offer]) -> bool:
    """Check whether any offer counters ``offer_id``."""
    return any(o.parent_offer_id == offer_id for o in offers.values())


def thread_heads(offers: Mapping[str, Offer]) -> list[Offer]:
    """
    Latest version of every thread, in root creation order.

    Superseded versions are history and are left out, as are offers
    whose parent chain cannot be resolved.
    """
    roots = _root_ids(offers)
    heads: dict[str, Offer] = {}
    for offer_id, root_id in roots.items():
        offer = offers[offer_id]
        current = heads.get(root_id)
        if current is None or offer.version_number > current.version_number:
            heads[root_id] = offer
    position = {oid: index for index, oid in enumerate(offers)}
    ordered_roots = sorted(heads, key=lambda rid: (offers[rid].created_at, position[rid]))
    return [heads[rid] for rid in ordered_roots]


def _money(value: Optional[float]) -> str:
    if value is None:
        return "$0"
    return f"${value:,.0f}"


def diff_offers(original: Offer, revised: Offer) -> OfferDiff:
    """
    Compare two offers field by field.

    Contingencies are compared as sets (case-insensitive); notes compare
    exactly.
    """
    original_keys = {c.lower(): c for c in original.contingencies}
    revised_keys = {c.lower(): c for c in revised.contingencies}
    added = [revised_keys[k] for k in revised_keys if k not in original_keys]
    removed = [original_keys[k] for k in original_keys if k not in revised_keys]

    changes = [
        FieldChange(
            "price", "Price",
            _money(original.price), _money(revised.price),
            original.price != revised.price,
        ),
        FieldChange(
            "net_proceeds", "Net Proceeds",
            _money(original.net_proceeds), _money(revised.net_proceeds),
            original.net_proceeds != revised.net_proceeds,
        ),
        FieldChange(
            "agent_commission", "Agent Commission",
            _money(original.agent_commission), _money(revised.agent_commission),
            original.agent_commission != revised.agent_commission,
        ),
        FieldChange(
            "closing_timeline_days", "Closing Timeline",
            f"{original.closing_timeline_days} days", f"{revised.closing_timeline_days} days",
            original.closing_timeline_days != revised.closing_timeline_days,
        ),
        FieldChange(
            "contingencies", "Contingencies",
            ", ".join(original.contingencies) or "None",
            ", ".join(revised.contingencies) or "None",
            bool(added or removed),
        ),
        FieldChange(
            "notes", "Notes",
            original.notes or "None", revised.notes or "None",
            (original.notes or "") != (revised.notes or ""),
        ),
    ]

    return OfferDiff(
        original_offer_id=original.offer_id,
        revised_offer_id=revised.offer_id,
        changes=changes,
        contingencies_added=added,
        contingencies_removed=removed,
    )


def term_changes(offer: Offer, changes: Mapping[str, Any]) -> list[str]:
    """Names of term fields in ``changes`` whose value differs from ``offer``."""
    current = offer.terms()
    edited = []
    for name in TERM_FIELDS:
        value = changes.get(name)
        if value is None:
            continue
        if name == "contingencies":
            if [str(v) for v in value] != current[name]:
                edited.append(name)
        elif value != current[name]:
            edited.append(name)
    return edited
