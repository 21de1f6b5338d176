"""
Document extraction adapter.

The text-extraction service is an external collaborator: any callable
taking ``(document_text, listing)`` and returning the offer payload
``{buyerName, buyerType, price, agentCommission, closingTimelineDays,
contingencies, notes}``. Its output goes through the same normalizer as
manual entry.

Extraction never blocks offer creation. When the collaborator fails or
returns data the normalizer rejects, a placeholder payload flagged
``needs_review`` is returned instead.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from offer_engine.core import (
    ExtractionFailure,
    Listing,
    NormalizedOffer,
    OfferSource,
    ValidationError,
    normalize_offer,
)
from offer_engine.logging_config import get_logger

logger = get_logger(__name__)

Extractor = Callable[[str, Listing], dict]

FALLBACK_NOTES = (
    "Placeholder terms: document extraction failed. "
    "Review the document and correct every field before relying on this offer."
)
FALLBACK_BUYER_NAME = "Unknown Buyer (needs review)"
FALLBACK_CLOSING_DAYS = 30
FALLBACK_CONTINGENCIES = ["financing", "inspection", "appraisal"]


@dataclass
class ExtractionResult:
    """Outcome of an extraction attempt."""

    payload: NormalizedOffer
    status: str  # "extracted" or "fallback"
    error: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def needs_review(self) -> bool:
        return self.payload.needs_review

    @property
    def is_fallback(self) -> bool:
        return self.status == "fallback"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "needs_review": self.needs_review,
            "error": self.error,
            "extracted_data": self.payload.to_payload(),
        }


def fallback_payload(listing: Listing, document_ref: Optional[str] = None) -> NormalizedOffer:
    """Placeholder terms based on the listing, clearly marked for manual review."""
    return normalize_offer({
        "buyer_name": FALLBACK_BUYER_NAME,
        "buyer_type": "other",
        "price": listing.asking_price,
        "closing_timeline_days": FALLBACK_CLOSING_DAYS,
        "contingencies": list(FALLBACK_CONTINGENCIES),
        "notes": FALLBACK_NOTES,
        "source": OfferSource.DOCUMENT.value,
        "needs_review": True,
        "document_ref": document_ref,
    })


class ExtractionService:
    """Runs the external extractor and normalizes its output."""

    def __init__(self, extractor: Optional[Extractor] = None):
        self._extractor = extractor

    def _call_extractor(self, document_text: str, listing: Listing) -> dict:
        if self._extractor is None:
            raise ExtractionFailure("No extraction service configured")
        try:
            data = self._extractor(document_text, listing)
        except ExtractionFailure:
            raise
        except Exception as e:
            raise ExtractionFailure(f"Extraction service error: {e}") from e
        if not isinstance(data, dict):
            raise ExtractionFailure("Extraction service returned no structured data")
        return data

    def extract(
        self,
        document_text: str,
        listing: Listing,
        document_ref: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Extract offer terms from document text.

        Returns:
            ExtractionResult; on any failure the payload is the flagged fallback
        """
        try:
            if not document_text or not document_text.strip():
                raise ExtractionFailure("Document is empty")

            raw = self._call_extractor(document_text, listing)
            try:
                payload = normalize_offer({
                    **raw,
                    "source": OfferSource.DOCUMENT.value,
                    "document_ref": document_ref,
                })
            except ValidationError as e:
                raise ExtractionFailure(f"Extracted data unusable: {e}") from e

        except ExtractionFailure as e:
            logger.warning(
                "Document extraction failed, returning placeholder offer",
                extra={"listing_id": listing.listing_id, "error": str(e)},
            )
            return ExtractionResult(
                payload=fallback_payload(listing, document_ref),
                status="fallback",
                error=str(e),
            )

        logger.info(
            "Document extraction succeeded",
            extra={"listing_id": listing.listing_id, "buyer_name": payload.buyer_name},
        )
        return ExtractionResult(payload=payload, status="extracted", raw=raw)
