"""
Usage events: the billable-action ledger.

One event per successful offer creation (root or counter) and per
successful document extraction. Events are append-only; only the
processing fields change once a billing attempt has been made.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class UsageEventType(Enum):
    """Billable actions."""

    OFFER_CREATION = "offer_creation"
    DOCUMENT_EXTRACTION = "document_extraction"


# Fixed fees (USD); extraction costs more than manual entry
USAGE_FEES: dict[UsageEventType, float] = {
    UsageEventType.OFFER_CREATION: 1.00,
    UsageEventType.DOCUMENT_EXTRACTION: 2.50,
}


@dataclass
class UsageEvent:
    """Ledger entry for one billable action."""

    event_id: str
    user_id: str
    event_type: UsageEventType
    amount: float
    processed: bool = False
    billing_reference: Optional[str] = None
    last_error: Optional[str] = None
    attempts: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    def mark_processed(self, reference: Optional[str]) -> None:
        self.processed = True
        self.billing_reference = reference
        self.last_error = None

    def mark_failed(self, error: str) -> None:
        self.last_error = error

    def to_dict(self) -> dict:
        return {
            "event_id": self.event_id,
            "user_id": self.user_id,
            "event_type": self.event_type.value,
            "amount": self.amount,
            "processed": self.processed,
            "billing_reference": self.billing_reference,
            "last_error": self.last_error,
            "attempts": self.attempts,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UsageEvent":
        created_at = data.get("created_at")
        return cls(
            event_id=data["event_id"],
            user_id=data["user_id"],
            event_type=UsageEventType(data["event_type"]),
            amount=float(data["amount"]),
            processed=data.get("processed", False),
            billing_reference=data.get("billing_reference"),
            last_error=data.get("last_error"),
            attempts=int(data.get("attempts", 0)),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(),
        )


def create_usage_event(event_id: str, user_id: str, event_type: UsageEventType) -> UsageEvent:
    """Create an unprocessed event at the fixed fee for its type."""
    return UsageEvent(
        event_id=event_id,
        user_id=user_id,
        event_type=event_type,
        amount=USAGE_FEES[event_type],
    )
