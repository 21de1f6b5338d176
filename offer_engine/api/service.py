"""
Offer service: the application layer over the engine.

Every operation takes the caller's user id and the repository passed in
at construction; there is no module-level state. Ownership is checked
against the parent listing. Computed offer fields are evaluated once, at
write time, and frozen on the record.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from offer_engine.core import (
    Address,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    Listing,
    ListingStatus,
    NormalizedOffer,
    NotFoundError,
    Offer,
    OfferDiff,
    OfferFrozenError,
    OfferInsights,
    OfferStatus,
    PriorityProfile,
    RankedOffer,
    StaleVersionError,
    UsageEvent,
    UsageEventType,
    ValidationError,
    ValidationResult,
    counter_fields,
    create_counter,
    create_root,
    create_usage_event,
    diff_offers,
    evaluate_offer,
    find_root,
    generate_insights,
    has_counters,
    latest_version,
    normalize_offer,
    offer_history,
    rank_offers,
    thread_heads,
    validate_listing_fields,
)
from offer_engine.core.validation import coerce_number
from offer_engine.core.versioning import term_changes
from offer_engine.logging_config import get_logger

from .billing import BillingDispatcher, BillingGateway
from .extraction import ExtractionResult, ExtractionService
from .storage import LISTING, OFFER, USAGE_EVENT, OfferStore

logger = get_logger(__name__)

# Listing fields the owner may change after creation
MUTABLE_LISTING_FIELDS = ("status", "loan_balance")

# Offers in these states are left out of insights and comparisons
CLOSED_STATUSES = (OfferStatus.REJECTED, OfferStatus.WITHDRAWN)


class OfferService:
    """Listing, offer and counter-offer operations for one repository."""

    def __init__(
        self,
        store: OfferStore,
        extraction: Optional[ExtractionService] = None,
        billing_gateway: Optional[BillingGateway] = None,
    ):
        self.store = store
        self.extraction = extraction or ExtractionService()
        self.billing = BillingDispatcher(store, billing_gateway)

    # Access helpers

    def _owned_listing(self, user_id: str, listing_id: str) -> Listing:
        listing = self.store.get_listing(listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        if not listing.is_owned_by(user_id):
            raise ForbiddenError(user_id, listing_id)
        return listing

    def _owned_offer(self, user_id: str, offer_id: str) -> tuple[Offer, Listing]:
        offer = self.store.get_offer(offer_id)
        if offer is None:
            raise NotFoundError("Offer", offer_id)
        listing = self._owned_listing(user_id, offer.listing_id)
        return offer, listing

    # Listings

    def create_listing(self, user_id: str, data: dict) -> Listing:
        """
        Create a listing and its default priority profile.

        Raises:
            ValidationError: If required fields are missing or malformed
        """
        result = validate_listing_fields(data)
        result.raise_for_errors()

        listing = Listing(
            listing_id=self.store.generate_id(LISTING),
            owner_id=user_id,
            address=Address(
                street=str(data["address"]).strip(),
                city=str(data["city"]).strip(),
                state=str(data["state"]).strip(),
                zip_code=str(data["zip_code"]).strip(),
            ),
            asking_price=coerce_number(data["asking_price"], "asking_price", ValidationResult()),
            loan_balance=coerce_number(
                data.get("loan_balance"), "loan_balance", ValidationResult(), required=False
            ),
            bedrooms=data.get("bedrooms"),
            bathrooms=data.get("bathrooms"),
            sqft=data.get("sqft"),
            description=data.get("description") or "",
            image_url=data.get("image_url"),
        )
        self.store.add_listing(listing)
        self.store.save_priorities(PriorityProfile(listing_id=listing.listing_id))

        for warning in result.warnings:
            logger.info(warning, extra={"listing_id": listing.listing_id})
        logger.info("Listing created", extra={"listing_id": listing.listing_id, "user_id": user_id})
        return listing

    def list_listings(self, user_id: str) -> list[Listing]:
        return self.store.list_listings(owner_id=user_id)

    def get_listing(self, user_id: str, listing_id: str) -> Listing:
        return self._owned_listing(user_id, listing_id)

    def update_listing(self, user_id: str, listing_id: str, changes: dict[str, Any]) -> Listing:
        """
        Change a listing's status and/or loan balance.

        Existing offers keep the net proceeds computed when they were written.

        Raises:
            ValidationError: For unknown statuses, bad balances or immutable fields
        """
        listing = self._owned_listing(user_id, listing_id)
        result = ValidationResult()
        updates: dict[str, Any] = {}

        for name in changes:
            if name not in MUTABLE_LISTING_FIELDS:
                result.add_error(ValidationError(name, "Field cannot be changed after creation"))

        if "status" in changes:
            try:
                updates["status"] = ListingStatus(changes["status"])
            except ValueError:
                result.add_error(ValidationError("status", "Unknown listing status", changes["status"]))

        if "loan_balance" in changes:
            updates["loan_balance"] = coerce_number(
                changes["loan_balance"], "loan_balance", result, required=False
            )

        result.raise_for_errors()

        listing = replace(listing, **updates)
        self.store.save_listing(listing)
        return listing

    # Priorities

    def get_priorities(self, user_id: str, listing_id: str) -> PriorityProfile:
        """Return the listing's profile, creating the default one if missing."""
        self._owned_listing(user_id, listing_id)
        profile = self.store.get_priorities(listing_id)
        if profile is None:
            profile = self.store.save_priorities(PriorityProfile(listing_id=listing_id))
        return profile

    def update_priorities(self, user_id: str, listing_id: str, patch: dict[str, Any]) -> PriorityProfile:
        profile = self.get_priorities(user_id, listing_id)
        return self.store.save_priorities(profile.apply_patch(patch))

    # Offers

    def _build_offer(
        self,
        user_id: str,
        listing: Listing,
        normalized: NormalizedOffer,
        offer_id: str,
    ) -> Offer:
        metrics = evaluate_offer(normalized, listing.loan_balance)
        return Offer(
            offer_id=offer_id,
            listing_id=listing.listing_id,
            user_id=user_id,
            buyer_name=normalized.buyer_name,
            buyer_type=normalized.buyer_type,
            price=normalized.price,
            agent_commission=normalized.agent_commission,
            closing_timeline_days=normalized.closing_timeline_days,
            contingencies=list(normalized.contingencies),
            commission_was_percent=normalized.commission_was_percent,
            commission_percent=normalized.commission_percent,
            notes=normalized.notes,
            net_proceeds=metrics.net_proceeds,
            risk_score=metrics.risk_score,
            overall_score=metrics.overall_score,
            source=normalized.source,
            needs_review=normalized.needs_review,
            document_ref=normalized.document_ref,
            created_at=datetime.now(),
        )

    def _record_usage(self, user_id: str, event_type: UsageEventType) -> UsageEvent:
        event = create_usage_event(self.store.generate_id(USAGE_EVENT), user_id, event_type)
        self.store.add_usage_event(event)
        self.billing.dispatch(event)
        return event

    def submit_offer(self, user_id: str, listing_id: str, raw: dict) -> Offer:
        """
        Create the first version of a new offer thread.

        Raises:
            NotFoundError, ForbiddenError: For missing or foreign listings
            ValidationError: For malformed offer input
        """
        listing = self._owned_listing(user_id, listing_id)
        normalized = normalize_offer(raw)

        with self.store.listing_lock(listing_id):
            offer = self._build_offer(user_id, listing, normalized, self.store.generate_id(OFFER))
            offer = self.store.add_offer(create_root(offer))

        logger.info(
            "Offer created",
            extra={
                "offer_id": offer.offer_id,
                "listing_id": listing_id,
                "overall_score": offer.overall_score,
                "source": offer.source.value,
            },
        )
        self._record_usage(user_id, UsageEventType.OFFER_CREATION)
        return offer

    def get_offer(self, user_id: str, offer_id: str) -> Offer:
        offer, _ = self._owned_offer(user_id, offer_id)
        return offer

    def list_offers(self, user_id: str, listing_id: str, latest_only: bool = False) -> list[Offer]:
        """All offers of a listing, or only the latest version of each thread."""
        self._owned_listing(user_id, listing_id)
        if latest_only:
            return thread_heads(self.store.offers_by_id(listing_id))
        return self.store.list_offers(listing_id)

    def update_offer(self, user_id: str, offer_id: str, changes: dict[str, Any]) -> Offer:
        """
        Edit an offer's terms in place and recompute its scores.

        Raises:
            OfferFrozenError: If the offer has been countered
            ValidationError: For malformed terms
        """
        offer, listing = self._owned_offer(user_id, offer_id)

        with self.store.listing_lock(listing.listing_id):
            offer = self.store.get_offer(offer_id)
            offers = self.store.offers_by_id(listing.listing_id)
            edited = term_changes(offer, changes)

            if not edited:
                # Clearing the review flag is not a term edit
                if "needs_review" in changes and bool(changes["needs_review"]) != offer.needs_review:
                    updated = replace(offer, needs_review=bool(changes["needs_review"]))
                    self.store.save_offer(updated)
                    return updated
                return offer

            if has_counters(offer_id, offers):
                raise OfferFrozenError(offer_id, edited)

            normalized = normalize_offer({
                **counter_fields(offer, changes),
                "source": offer.source.value,
                "document_ref": offer.document_ref,
                "needs_review": changes.get("needs_review", offer.needs_review),
            })
            rebuilt = self._build_offer(offer.user_id, listing, normalized, offer.offer_id)
            updated = replace(
                rebuilt,
                status=offer.status,
                parent_offer_id=offer.parent_offer_id,
                version_number=offer.version_number,
                is_counter_offer=offer.is_counter_offer,
                created_at=offer.created_at,
            )
            self.store.save_offer(updated)

        logger.info("Offer updated", extra={"offer_id": offer_id, "fields": edited})
        return updated

    def change_status(self, user_id: str, offer_id: str, status: str) -> Offer:
        """
        Move an offer through its status lifecycle.

        Raises:
            ValidationError: For unknown statuses
            InvalidTransitionError: If the transition is not allowed
        """
        offer, _ = self._owned_offer(user_id, offer_id)
        try:
            target = OfferStatus(status)
        except ValueError:
            raise ValidationError("status", "Unknown offer status", status)

        if target == offer.status:
            return offer
        if not offer.can_transition(target):
            raise InvalidTransitionError(offer.status, target)

        updated = replace(offer, status=target)
        self.store.save_offer(updated)
        logger.info(
            "Offer status changed",
            extra={"offer_id": offer_id, "from_status": offer.status.value, "to_status": target.value},
        )
        return updated

    # Counter-offers

    def _check_counterable(self, parent: Offer, offers: dict[str, Offer]) -> None:
        if parent.status == OfferStatus.WITHDRAWN:
            raise ConflictError(f"Offer '{parent.offer_id}' was withdrawn and cannot be countered")
        latest = latest_version(parent.offer_id, offers)
        if latest.offer_id != parent.offer_id:
            raise StaleVersionError(parent.offer_id, latest.offer_id, latest.version_number)

    def preview_counter(
        self,
        user_id: str,
        offer_id: str,
        changes: dict[str, Any],
    ) -> tuple[Offer, OfferDiff]:
        """
        Build the counter-offer a change set would produce, without saving it.

        Returns:
            (draft counter, diff against the parent)
        """
        parent, listing = self._owned_offer(user_id, offer_id)
        self._check_counterable(parent, self.store.offers_by_id(listing.listing_id))

        normalized = normalize_offer(counter_fields(parent, changes))
        draft = create_counter(parent, self._build_offer(user_id, listing, normalized, ""))
        return draft, diff_offers(parent, draft)

    def counter_offer(self, user_id: str, offer_id: str, changes: dict[str, Any]) -> Offer:
        """
        Create a counter-offer to ``offer_id``.

        Unspecified fields inherit from the countered offer; scores are
        recomputed for the new terms.

        Raises:
            StaleVersionError: If ``offer_id`` is not the latest version of its thread
            ConflictError: If the offer was withdrawn
        """
        _, listing = self._owned_offer(user_id, offer_id)

        with self.store.listing_lock(listing.listing_id):
            parent = self.store.get_offer(offer_id)
            self._check_counterable(parent, self.store.offers_by_id(listing.listing_id))

            normalized = normalize_offer(counter_fields(parent, changes))
            offer = self._build_offer(user_id, listing, normalized, self.store.generate_id(OFFER))
            counter = self.store.add_offer(create_counter(parent, offer))

        logger.info(
            "Counter-offer created",
            extra={
                "offer_id": counter.offer_id,
                "parent_offer_id": parent.offer_id,
                "version_number": counter.version_number,
                "listing_id": listing.listing_id,
            },
        )
        self._record_usage(user_id, UsageEventType.OFFER_CREATION)
        return counter

    def history(self, user_id: str, offer_id: str) -> list[Offer]:
        """Every version of the offer's negotiation thread, oldest first."""
        _, listing = self._owned_offer(user_id, offer_id)
        return offer_history(offer_id, self.store.offers_by_id(listing.listing_id))

    def diff(self, user_id: str, original_id: str, revised_id: str) -> OfferDiff:
        """
        Compare two versions of one thread.

        Raises:
            ValidationError: If the offers belong to different threads
        """
        original, listing = self._owned_offer(user_id, original_id)
        revised, _ = self._owned_offer(user_id, revised_id)

        offers = self.store.offers_by_id(listing.listing_id)
        if revised.listing_id != original.listing_id or (
            find_root(original_id, offers).offer_id != find_root(revised_id, offers).offer_id
        ):
            raise ValidationError(
                "revised_offer_id", "Offers belong to different negotiation threads", revised_id
            )
        return diff_offers(original, revised)

    # Comparison

    def _comparable_offers(self, listing_id: str) -> list[Offer]:
        heads = thread_heads(self.store.offers_by_id(listing_id))
        return [o for o in heads if o.status not in CLOSED_STATUSES]

    def compare_offers(
        self,
        user_id: str,
        listing_id: str,
        weighted: bool = True,
    ) -> tuple[PriorityProfile, list[RankedOffer]]:
        """
        Rank the live offers of a listing.

        Uses the latest version of each thread, skipping rejected and
        withdrawn offers. Weighted ranking applies the listing's priorities.
        """
        priorities = self.get_priorities(user_id, listing_id)
        offers = self._comparable_offers(listing_id)
        return priorities, rank_offers(offers, priorities if weighted else None)

    def insights(self, user_id: str, listing_id: str) -> OfferInsights:
        listing = self._owned_listing(user_id, listing_id)
        return generate_insights(self._comparable_offers(listing_id), listing.asking_price)

    # Extraction

    def extract_offer(
        self,
        user_id: str,
        listing_id: str,
        document_text: str,
        document_ref: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Extract offer terms from a document for the caller to confirm.

        Never raises for extraction problems; a flagged placeholder comes
        back instead. Only genuine extractions are billed.
        """
        listing = self._owned_listing(user_id, listing_id)
        result = self.extraction.extract(document_text, listing, document_ref)
        if not result.is_fallback:
            self._record_usage(user_id, UsageEventType.DOCUMENT_EXTRACTION)
        return result

    # Usage

    def usage_events(self, user_id: str) -> list[UsageEvent]:
        return self.store.list_usage_events(user_id)

    def reconcile_billing(self) -> int:
        """Retry charging every unprocessed usage event."""
        return self.billing.reconcile()
