"""
Offer data model.

An offer is a buyer's proposed purchase terms against a listing. The
computed fields (net proceeds, risk score, overall score) are frozen
on the record at write time so historical comparisons stay stable.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class BuyerType(Enum):
    """Buyer classification."""

    FIRST_TIME = "first_time"
    CASH = "cash"
    PRE_APPROVED = "pre_approved"
    INVESTOR = "investor"
    OTHER = "other"


class OfferStatus(Enum):
    """Possible states for an offer."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"  # Cancelled by either side


class OfferSource(Enum):
    """How the offer terms were captured."""

    MANUAL = "manual"
    DOCUMENT = "document"


# Valid status transitions; rejected and withdrawn are terminal
VALID_TRANSITIONS: dict[OfferStatus, set[OfferStatus]] = {
    OfferStatus.PENDING: {OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.WITHDRAWN},
    OfferStatus.ACCEPTED: {OfferStatus.WITHDRAWN},
    OfferStatus.REJECTED: set(),
    OfferStatus.WITHDRAWN: set(),
}


class InvalidTransitionError(Exception):
    """Raised when an invalid status transition is attempted."""

    def __init__(self, current: OfferStatus, target: OfferStatus):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move offer from '{current.value}' to '{target.value}'"
        )


# Fields a counter-offer may change (everything else is lineage or computed)
TERM_FIELDS = (
    "buyer_name",
    "buyer_type",
    "price",
    "agent_commission",
    "closing_timeline_days",
    "contingencies",
    "notes",
)


@dataclass
class Offer:
    """
    Stored offer record.

    Lineage fields (parent_offer_id, version_number, is_counter_offer)
    place the offer in a negotiation thread.
    """

    offer_id: str
    listing_id: str
    user_id: str

    # Buyer
    buyer_name: str
    buyer_type: BuyerType

    # Terms
    price: float
    agent_commission: float  # Always dollars
    closing_timeline_days: int
    contingencies: list[str] = field(default_factory=list)
    commission_was_percent: bool = False
    commission_percent: Optional[float] = None  # Original percent, for display
    notes: str = ""

    # Computed at write time
    net_proceeds: float = 0.0
    risk_score: int = 10
    overall_score: int = 0  # Raw, unclamped

    # Lifecycle
    status: OfferStatus = OfferStatus.PENDING
    source: OfferSource = OfferSource.MANUAL
    needs_review: bool = False
    document_ref: Optional[str] = None

    # Version graph
    parent_offer_id: Optional[str] = None
    version_number: int = 1
    is_counter_offer: bool = False

    created_at: datetime = field(default_factory=datetime.now)

    @property
    def contingency_count(self) -> int:
        return len(self.contingencies)

    @property
    def display_score(self) -> int:
        """Overall score clamped to [0, 100] for presentation."""
        return max(0, min(100, self.overall_score))

    @property
    def is_root(self) -> bool:
        return self.parent_offer_id is None

    def can_transition(self, target: OfferStatus) -> bool:
        return target in VALID_TRANSITIONS.get(self.status, set())

    def terms(self) -> dict:
        """Input terms of this offer, in normalizer payload form."""
        return {
            "buyer_name": self.buyer_name,
            "buyer_type": self.buyer_type.value,
            "price": self.price,
            "agent_commission": self.agent_commission,
            "commission_unit": "dollar",
            "commission_was_percent": self.commission_was_percent,
            "commission_percent": self.commission_percent,
            "closing_timeline_days": self.closing_timeline_days,
            "contingencies": list(self.contingencies),
            "notes": self.notes,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "offer_id": self.offer_id,
            "listing_id": self.listing_id,
            "user_id": self.user_id,
            "buyer_name": self.buyer_name,
            "buyer_type": self.buyer_type.value,
            "price": self.price,
            "agent_commission": self.agent_commission,
            "commission_was_percent": self.commission_was_percent,
            "commission_percent": self.commission_percent,
            "closing_timeline_days": self.closing_timeline_days,
            "contingencies": list(self.contingencies),
            "notes": self.notes,
            "net_proceeds": self.net_proceeds,
            "risk_score": self.risk_score,
            "overall_score": self.overall_score,
            "display_score": self.display_score,
            "status": self.status.value,
            "source": self.source.value,
            "needs_review": self.needs_review,
            "document_ref": self.document_ref,
            "parent_offer_id": self.parent_offer_id,
            "version_number": self.version_number,
            "is_counter_offer": self.is_counter_offer,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Offer":
        """Create an Offer from its dictionary representation."""
        created_at = data.get("created_at")
        return cls(
            offer_id=data["offer_id"],
            listing_id=data["listing_id"],
            user_id=data["user_id"],
            buyer_name=data.get("buyer_name", ""),
            buyer_type=BuyerType(data.get("buyer_type", "other")),
            price=float(data["price"]),
            agent_commission=float(data.get("agent_commission", 0.0)),
            closing_timeline_days=int(data["closing_timeline_days"]),
            contingencies=list(data.get("contingencies", [])),
            commission_was_percent=data.get("commission_was_percent", False),
            commission_percent=data.get("commission_percent"),
            notes=data.get("notes", ""),
            net_proceeds=float(data.get("net_proceeds", 0.0)),
            risk_score=int(data.get("risk_score", 10)),
            overall_score=int(data.get("overall_score", 0)),
            status=OfferStatus(data.get("status", "pending")),
            source=OfferSource(data.get("source", "manual")),
            needs_review=data.get("needs_review", False),
            document_ref=data.get("document_ref"),
            parent_offer_id=data.get("parent_offer_id"),
            version_number=int(data.get("version_number", 1)),
            is_counter_offer=data.get("is_counter_offer", False),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(),
        )
