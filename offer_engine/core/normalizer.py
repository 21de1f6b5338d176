"""
Offer normalizer.

Converts raw offer input (manual form or extraction output) into a
canonical payload: numeric price and timeline, commission resolved to
dollars, deduplicated contingencies and a classified buyer type.

Commission units are inferred from magnitude unless the caller sends an
explicit ``commission_unit``: a value in (0, 20] is a percentage of the
price, anything above 20 is already dollars. A $15 commission and a 15%
commission are therefore indistinguishable without the explicit unit,
and a commission above 20% is read as dollars.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from .offer import BuyerType, OfferSource
from .validation import ValidationError, ValidationResult, coerce_int, coerce_number

# Values at or below this are read as percent of price
PERCENT_COMMISSION_THRESHOLD = 20.0

# Applied when no commission is given
DEFAULT_COMMISSION_PERCENT = 6.0

COMMISSION_UNITS = ("percent", "dollar")

# Wire names used by the form and the extraction service
_FIELD_ALIASES = {
    "buyerName": "buyer_name",
    "buyerType": "buyer_type",
    "agentCommission": "agent_commission",
    "commissionType": "commission_unit",
    "commissionUnit": "commission_unit",
    "commissionWasPercent": "commission_was_percent",
    "commissionPercent": "commission_percent",
    "closingTimelineDays": "closing_timeline_days",
    "needsReview": "needs_review",
    "documentRef": "document_ref",
}

_BUYER_TYPE_ALIASES = {
    "first_time": BuyerType.FIRST_TIME,
    "first_time_buyer": BuyerType.FIRST_TIME,
    "first_time_homebuyer": BuyerType.FIRST_TIME,
    "cash": BuyerType.CASH,
    "cash_buyer": BuyerType.CASH,
    "all_cash": BuyerType.CASH,
    "pre_approved": BuyerType.PRE_APPROVED,
    "preapproved": BuyerType.PRE_APPROVED,
    "pre_approved_buyer": BuyerType.PRE_APPROVED,
    "investor": BuyerType.INVESTOR,
    "real_estate_investor": BuyerType.INVESTOR,
    "other": BuyerType.OTHER,
}


@dataclass(frozen=True)
class NormalizedOffer:
    """Canonical offer payload produced by the normalizer."""

    price: float
    agent_commission: float  # Dollars
    closing_timeline_days: int
    contingencies: tuple[str, ...] = ()
    commission_was_percent: bool = False
    commission_percent: Optional[float] = None
    buyer_name: str = ""
    buyer_type: BuyerType = BuyerType.OTHER
    notes: str = ""
    source: OfferSource = OfferSource.MANUAL
    needs_review: bool = False
    document_ref: Optional[str] = None

    def to_payload(self) -> dict:
        """Payload form; normalizing it again yields an equal result."""
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
            "source": self.source.value,
            "needs_review": self.needs_review,
            "document_ref": self.document_ref,
        }


def _canonical_keys(raw: dict) -> dict:
    data = {}
    for key, value in raw.items():
        data[_FIELD_ALIASES.get(key, key)] = value
    return data


def classify_buyer_type(value: Any) -> BuyerType:
    """Map free-text buyer descriptions onto BuyerType (unknown -> OTHER)."""
    if isinstance(value, BuyerType):
        return value
    if not value:
        return BuyerType.OTHER
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    return _BUYER_TYPE_ALIASES.get(key, BuyerType.OTHER)


def dedupe_contingencies(values: Any) -> tuple[str, ...]:
    """
    Collapse duplicate contingencies, keeping first-seen spelling.

    Matching ignores case and surrounding whitespace; blank entries
    are dropped.
    """
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]

    seen = set()
    result = []
    for item in values:
        if item is None:
            continue
        label = str(item).strip()
        key = label.lower()
        if not label or key in seen:
            continue
        seen.add(key)
        result.append(label)
    return tuple(result)


def resolve_commission(
    price: float,
    commission: Optional[float],
    unit: Optional[str] = None,
) -> tuple[float, bool, Optional[float]]:
    """
    Resolve a commission to dollars.

    Args:
        price: Offer price
        commission: Raw commission value, or None when not given
        unit: Explicit "percent" or "dollar"; None infers from magnitude

    Returns:
        (dollars, was_percent, original_percent)
    """
    if commission is None:
        return price * (DEFAULT_COMMISSION_PERCENT / 100), True, DEFAULT_COMMISSION_PERCENT

    if unit == "percent":
        return price * (commission / 100), True, commission
    if unit == "dollar":
        return commission, False, None

    if 0 < commission <= PERCENT_COMMISSION_THRESHOLD:
        return price * (commission / 100), True, commission
    return commission, False, None


def normalize_offer(raw: dict) -> NormalizedOffer:
    """
    Normalize a raw offer payload.

    Args:
        raw: Form or extraction payload (camelCase or snake_case keys)

    Returns:
        NormalizedOffer

    Raises:
        ValidationError: If price or closing timeline is missing or invalid,
            or any optional numeric field is malformed
    """
    data = _canonical_keys(raw)
    result = ValidationResult()

    price = coerce_number(data.get("price"), "price", result)
    timeline = coerce_int(data.get("closing_timeline_days"), "closing_timeline_days", result)
    commission = coerce_number(
        data.get("agent_commission"), "agent_commission", result, required=False
    )

    unit = data.get("commission_unit")
    if unit is not None:
        unit = str(unit).strip().lower()
        if unit not in COMMISSION_UNITS:
            result.add_error(ValidationError(
                "commission_unit",
                f"Must be one of {', '.join(COMMISSION_UNITS)}",
                unit,
            ))

    contingencies = data.get("contingencies")
    if contingencies is not None and not isinstance(contingencies, (list, tuple, set, str)):
        result.add_error(ValidationError("contingencies", "Must be a list of strings", contingencies))
        contingencies = None

    source = data.get("source") or OfferSource.MANUAL.value
    try:
        source = OfferSource(source) if not isinstance(source, OfferSource) else source
    except ValueError:
        result.add_error(ValidationError("source", "Unknown offer source", source))

    result.raise_for_errors()

    dollars, was_percent, percent = resolve_commission(price, commission, unit)

    # A payload that was already resolved keeps its display flag
    if unit == "dollar" and data.get("commission_was_percent"):
        was_percent = True
        percent = data.get("commission_percent")

    return NormalizedOffer(
        price=price,
        agent_commission=dollars,
        closing_timeline_days=timeline,
        contingencies=dedupe_contingencies(contingencies),
        commission_was_percent=was_percent,
        commission_percent=percent,
        buyer_name=str(data.get("buyer_name") or "").strip(),
        buyer_type=classify_buyer_type(data.get("buyer_type")),
        notes=str(data.get("notes") or ""),
        source=source,
        needs_review=bool(data.get("needs_review", False)),
        document_ref=data.get("document_ref"),
    )
