"""
Billing dispatch for usage events.

Usage events are written to the ledger first; the charge is attempted
afterwards and its outcome only updates the event. A failed or missing
payment provider leaves the event unprocessed for reconciliation and
never affects the operation that produced it.
"""

from typing import Optional, Protocol

from offer_engine.core import BillingFailure, UsageEvent
from offer_engine.logging_config import get_logger

from .storage import OfferStore

logger = get_logger(__name__)


class BillingGateway(Protocol):
    """Payment provider collaborator."""

    def charge(self, event: UsageEvent) -> str:
        """Charge for the event and return a provider reference."""
        ...


class BillingDispatcher:
    """Fire-and-forget charging of usage events."""

    def __init__(self, store: OfferStore, gateway: Optional[BillingGateway] = None):
        self._store = store
        self._gateway = gateway

    def dispatch(self, event: UsageEvent) -> bool:
        """
        Try to charge one event.

        Returns:
            True if the event is now processed
        """
        if event.processed:
            return True
        if self._gateway is None:
            return False

        event.attempts += 1
        try:
            reference = self._gateway.charge(event)
        except Exception as e:
            failure = BillingFailure(f"Charge for usage event '{event.event_id}' failed: {e}")
            event.mark_failed(str(failure))
            self._store.save_usage_event(event)
            logger.warning(
                "Billing failed; usage event left unprocessed",
                extra={
                    "event_id": event.event_id,
                    "event_type": event.event_type.value,
                    "attempts": event.attempts,
                    "error": str(e),
                },
            )
            return False

        event.mark_processed(reference)
        self._store.save_usage_event(event)
        logger.info(
            "Usage event charged",
            extra={"event_id": event.event_id, "billing_reference": reference},
        )
        return True

    def reconcile(self) -> int:
        """
        Retry every unprocessed event.

        Returns:
            Number of events processed in this pass
        """
        processed = 0
        for event in self._store.pending_usage_events():
            if self.dispatch(event):
                processed += 1
        return processed
