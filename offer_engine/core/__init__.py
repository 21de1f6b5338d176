"""
Core modules for the offer engine.

- listing: Listing data model
- priorities: Per-listing priority profile (five 1-10 sliders)
- offer: Offer record, buyer types, status state machine
- validation: Field-level input validation
- normalizer: Raw offer input -> canonical payload
- financial: Net proceeds
- risk: Contingency-based risk score
- scoring: Overall score (baseline and priority-weighted), ranking
- versioning: Counter-offer version graph and diff view
- insights: Comparative offer insights
- usage: Billable usage events
"""

from .errors import (
    OfferEngineError,
    NotFoundError,
    ForbiddenError,
    ConflictError,
    OfferFrozenError,
    StaleVersionError,
    OfferGraphError,
    ExtractionFailure,
    BillingFailure,
)
from .listing import Listing, Address, ListingStatus
from .priorities import PriorityProfile, PRIORITY_FIELDS, DEFAULT_PRIORITY_WEIGHT
from .offer import (
    Offer,
    BuyerType,
    OfferStatus,
    OfferSource,
    InvalidTransitionError,
)
from .validation import ValidationError, ValidationResult, validate_listing_fields
from .normalizer import (
    NormalizedOffer,
    normalize_offer,
    resolve_commission,
    classify_buyer_type,
    dedupe_contingencies,
    PERCENT_COMMISSION_THRESHOLD,
    DEFAULT_COMMISSION_PERCENT,
)
from .financial import calculate_net_proceeds
from .risk import calculate_risk_score
from .scoring import (
    OfferMetrics,
    WeightedScore,
    RankedOffer,
    calculate_overall_score,
    calculate_weighted_score,
    clamp_score,
    evaluate_offer,
    rank_offers,
)
from .versioning import (
    OfferDiff,
    FieldChange,
    create_root,
    create_counter,
    counter_fields,
    find_root,
    offer_history,
    latest_version,
    has_counters,
    thread_heads,
    diff_offers,
)
from .insights import OfferInsights, generate_insights
from .usage import UsageEvent, UsageEventType, USAGE_FEES, create_usage_event

__all__ = [
    # Errors
    "OfferEngineError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "OfferFrozenError",
    "StaleVersionError",
    "OfferGraphError",
    "ExtractionFailure",
    "BillingFailure",
    "ValidationError",
    "InvalidTransitionError",
    # Models
    "Listing",
    "Address",
    "ListingStatus",
    "PriorityProfile",
    "PRIORITY_FIELDS",
    "DEFAULT_PRIORITY_WEIGHT",
    "Offer",
    "BuyerType",
    "OfferStatus",
    "OfferSource",
    "UsageEvent",
    "UsageEventType",
    "USAGE_FEES",
    "create_usage_event",
    # Validation and normalization
    "ValidationResult",
    "validate_listing_fields",
    "NormalizedOffer",
    "normalize_offer",
    "resolve_commission",
    "classify_buyer_type",
    "dedupe_contingencies",
    "PERCENT_COMMISSION_THRESHOLD",
    "DEFAULT_COMMISSION_PERCENT",
    # Calculators and scoring
    "calculate_net_proceeds",
    "calculate_risk_score",
    "OfferMetrics",
    "WeightedScore",
    "RankedOffer",
    "calculate_overall_score",
    "calculate_weighted_score",
    "clamp_score",
    "evaluate_offer",
    "rank_offers",
    # Version graph
    "OfferDiff",
    "FieldChange",
    "create_root",
    "create_counter",
    "counter_fields",
    "find_root",
    "offer_history",
    "latest_version",
    "has_counters",
    "thread_heads",
    "diff_offers",
    # Insights
    "OfferInsights",
    "generate_insights",
]
