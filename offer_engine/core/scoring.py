"""
Scoring module for ranking offers.

The baseline overall score combines three components:
  - price: $1M contributes 40 points
  - risk: risk score x 5 (up to 50 points)
  - timeline: 60 points minus half a point per closing day

The raw score is not clamped; it is stored on the offer and used for
ranking. Presentation clamps to [0, 100] via clamp_score.

The priority-weighted variant rescales each factor to a 0-100 band and
blends them with the listing's normalized priority weights.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .financial import calculate_net_proceeds
from .normalizer import NormalizedOffer
from .offer import BuyerType, Offer
from .priorities import PriorityProfile
from .risk import MAX_RISK_SCORE, calculate_risk_score

PRICE_POINTS_PER_MILLION = 40
RISK_POINTS_PER_UNIT = 5
TIMELINE_BASE_POINTS = 60
TIMELINE_POINTS_PER_DAY = 0.5

MIN_DISPLAY_SCORE = 0
MAX_DISPLAY_SCORE = 100

# Buyer qualification on a 0-100 band for the weighted variant
BUYER_QUALIFICATION_SCORES = {
    BuyerType.CASH: 100.0,
    BuyerType.PRE_APPROVED: 80.0,
    BuyerType.INVESTOR: 70.0,
    BuyerType.FIRST_TIME: 50.0,
    BuyerType.OTHER: 40.0,
}


class ScoreCategory(Enum):
    """Factors of the priority-weighted score, named after the sliders."""

    OFFER_PRICE = "offer_price"
    NET_PROCEEDS = "net_proceeds"
    CLOSING_TIMELINE = "closing_timeline"
    CONTINGENCIES = "contingencies"
    BUYER_QUALIFICATION = "buyer_qualification"


@dataclass
class ScoreFactor:
    """Individual scoring factor result."""

    category: ScoreCategory
    score: float  # 0-100 band (may exceed for extreme inputs)
    weight: float  # Normalized priority weight
    weighted_score: float  # score * weight
    explanation: str


@dataclass
class WeightedScore:
    """Priority-weighted score for one offer."""

    offer_id: str
    total_score: float
    factors: list[ScoreFactor] = field(default_factory=list)

    @property
    def display_score(self) -> int:
        return clamp_score(round_half_up(self.total_score))

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "total_score": round(self.total_score, 2),
            "display_score": self.display_score,
            "factors": [
                {
                    "category": f.category.value,
                    "score": round(f.score, 2),
                    "weight": round(f.weight, 4),
                    "weighted_score": round(f.weighted_score, 2),
                    "explanation": f.explanation,
                }
                for f in self.factors
            ],
        }


@dataclass(frozen=True)
class OfferMetrics:
    """Computed fields frozen onto an offer at write time."""

    net_proceeds: float
    risk_score: int
    overall_score: int


@dataclass
class RankedOffer:
    """An offer with its position in a comparison."""

    rank: int
    offer: Offer
    score: float  # Value the ranking was ordered by
    weighted: Optional[WeightedScore] = None

    def to_dict(self) -> dict:
        result = {
            "rank": self.rank,
            "score": round(self.score, 2),
            "display_score": clamp_score(round_half_up(self.score)),
            "offer": self.offer.to_dict(),
        }
        if self.weighted:
            result["weighted"] = self.weighted.to_dict()
        return result


def round_half_up(value: float) -> int:
    """Round to nearest int with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def clamp_score(score: float) -> int:
    """Clamp a score to [0, 100] for display."""
    return int(max(MIN_DISPLAY_SCORE, min(MAX_DISPLAY_SCORE, score)))


def price_component(price: float) -> float:
    return price / 1_000_000 * PRICE_POINTS_PER_MILLION


def risk_component(risk_score: int) -> float:
    return risk_score * RISK_POINTS_PER_UNIT


def timeline_component(closing_timeline_days: float) -> float:
    """60 for a same-day close, 0 at 120 days, negative beyond."""
    return TIMELINE_BASE_POINTS - closing_timeline_days * TIMELINE_POINTS_PER_DAY


def calculate_overall_score(price: float, risk_score: int, closing_timeline_days: float) -> int:
    """
    Calculate the baseline overall score (unclamped).

    Returns:
        round(price/1e6*40 + risk*5 + (60 - days/2)); may fall outside [0, 100]
    """
    raw = (
        price_component(price)
        + risk_component(risk_score)
        + timeline_component(closing_timeline_days)
    )
    return round_half_up(raw)


def evaluate_offer(normalized: NormalizedOffer, loan_balance: Optional[float]) -> OfferMetrics:
    """Run the financial, risk and overall scorers over a normalized offer."""
    net_proceeds = calculate_net_proceeds(
        normalized.price, loan_balance, normalized.agent_commission
    )
    risk_score = calculate_risk_score(normalized.contingencies)
    overall_score = calculate_overall_score(
        normalized.price, risk_score, normalized.closing_timeline_days
    )
    return OfferMetrics(
        net_proceeds=net_proceeds,
        risk_score=risk_score,
        overall_score=overall_score,
    )


def _factor(category: ScoreCategory, score: float, weights: dict[str, float], explanation: str) -> ScoreFactor:
    weight = weights[category.value]
    return ScoreFactor(
        category=category,
        score=score,
        weight=weight,
        weighted_score=score * weight,
        explanation=explanation,
    )


def calculate_weighted_score(offer: Offer, priorities: PriorityProfile) -> WeightedScore:
    """
    Score an offer against a listing's priority profile.

    Each factor is expressed on a 0-100 band:
      - offer_price: baseline price component rescaled ($1M -> 100)
      - contingencies: risk score x 10
      - closing_timeline: baseline timeline component rescaled (0 days -> 100)
      - net_proceeds: net proceeds as a percentage of price
      - buyer_qualification: fixed value per buyer type

    Factors are combined with the profile's normalized weights.
    """
    weights = priorities.normalized()

    price_score = price_component(offer.price) / PRICE_POINTS_PER_MILLION * 100
    risk_score = offer.risk_score / MAX_RISK_SCORE * 100
    timeline_score = timeline_component(offer.closing_timeline_days) / TIMELINE_BASE_POINTS * 100
    net_score = offer.net_proceeds / offer.price * 100 if offer.price > 0 else 0.0
    buyer_score = BUYER_QUALIFICATION_SCORES[offer.buyer_type]

    factors = [
        _factor(
            ScoreCategory.OFFER_PRICE, price_score, weights,
            f"Offer price ${offer.price:,.0f}",
        ),
        _factor(
            ScoreCategory.NET_PROCEEDS, net_score, weights,
            f"Net proceeds ${offer.net_proceeds:,.0f} ({net_score:.1f}% of price)",
        ),
        _factor(
            ScoreCategory.CLOSING_TIMELINE, timeline_score, weights,
            f"Closes in {offer.closing_timeline_days} days",
        ),
        _factor(
            ScoreCategory.CONTINGENCIES, risk_score, weights,
            f"{offer.contingency_count} contingencies (risk score {offer.risk_score}/10)",
        ),
        _factor(
            ScoreCategory.BUYER_QUALIFICATION, buyer_score, weights,
            f"Buyer type '{offer.buyer_type.value}'",
        ),
    ]

    return WeightedScore(
        offer_id=offer.offer_id,
        total_score=sum(f.weighted_score for f in factors),
        factors=factors,
    )


def _tie_break_key(indexed: tuple[int, Offer]) -> tuple[datetime, int]:
    index, offer = indexed
    return offer.created_at, index


def rank_offers(
    offers: list[Offer],
    priorities: Optional[PriorityProfile] = None,
) -> list[RankedOffer]:
    """
    Rank offers best-first.

    Orders by the stored raw overall score, or by the priority-weighted
    score when a profile is given. Ties go to the earliest created offer,
    then to input order.
    """
    # Sort by tie-break first; the stable score sort keeps that order among equals
    ordered = sorted(enumerate(offers), key=_tie_break_key)

    scored = []
    for _, offer in ordered:
        weighted = calculate_weighted_score(offer, priorities) if priorities else None
        score = weighted.total_score if weighted else float(offer.overall_score)
        scored.append((score, offer, weighted))

    scored.sort(key=lambda item: item[0], reverse=True)

    return [
        RankedOffer(rank=position, offer=offer, score=score, weighted=weighted)
        for position, (score, offer, weighted) in enumerate(scored, start=1)
    ]
