"""
Insight generator.

Rule-based comparison across a listing's offers. Produces structured
data (offer ids, names, metrics) with a rendered English message on
each part, so callers can show the message or build their own text.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from .offer import BuyerType, Offer

NO_OFFERS_MESSAGE = "No offers to analyze yet"

# Negotiation rule thresholds
MANY_CONTINGENCIES = 3
LONG_CLOSING_DAYS = 45


@dataclass
class Recommendation:
    offer_id: str
    buyer_name: str
    overall_score: int
    display_score: int
    message: str

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "buyer_name": self.buyer_name,
            "overall_score": self.overall_score,
            "display_score": self.display_score,
            "message": self.message,
        }


@dataclass
class RiskAssessment:
    offer_id: str
    buyer_name: str
    risk_score: int
    contingency_count: int
    message: str

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "buyer_name": self.buyer_name,
            "risk_score": self.risk_score,
            "contingency_count": self.contingency_count,
            "message": self.message,
        }


@dataclass
class NetProceedsComparison:
    offer_id: str
    buyer_name: str
    net_proceeds: float
    runner_up_offer_id: Optional[str]
    difference: Optional[float]  # None with a single offer
    message: str

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "buyer_name": self.buyer_name,
            "net_proceeds": self.net_proceeds,
            "runner_up_offer_id": self.runner_up_offer_id,
            "difference": self.difference,
            "message": self.message,
        }


@dataclass
class NegotiationOpportunity:
    offer_id: str
    buyer_name: str
    kind: str  # reduce_contingencies, shorten_closing, improve_price, financing_proof
    message: str

    def to_dict(self) -> dict:
        return {
            "offer_id": self.offer_id,
            "buyer_name": self.buyer_name,
            "kind": self.kind,
            "message": self.message,
        }


@dataclass
class OfferInsights:
    """Comparative summary of a set of offers."""

    has_offers: bool
    offer_count: int = 0
    recommendation: Optional[Recommendation] = None
    risk_assessment: Optional[RiskAssessment] = None
    net_proceeds_comparison: Optional[NetProceedsComparison] = None
    negotiation_opportunities: list[NegotiationOpportunity] = field(default_factory=list)
    message: str = ""
    generated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "has_offers": self.has_offers,
            "offer_count": self.offer_count,
            "message": self.message,
            "recommendation": self.recommendation.to_dict() if self.recommendation else None,
            "risk_assessment": self.risk_assessment.to_dict() if self.risk_assessment else None,
            "net_proceeds_comparison": (
                self.net_proceeds_comparison.to_dict() if self.net_proceeds_comparison else None
            ),
            "negotiation_opportunities": [o.to_dict() for o in self.negotiation_opportunities],
            "generated_at": self.generated_at.isoformat(),
        }


def _first_best(offers: list[Offer], key: Callable[[Offer], float]) -> Offer:
    """Offer with the highest key; ties go to the earliest created (then input order)."""
    ordered = sorted(enumerate(offers), key=lambda item: (item[1].created_at, item[0]))
    best = ordered[0][1]
    for _, offer in ordered[1:]:
        if key(offer) > key(best):
            best = offer
    return best


def _money(value: float) -> str:
    if value < 0:
        return f"-${abs(value):,.0f}"
    return f"${value:,.0f}"


def _name(offer: Offer) -> str:
    return offer.buyer_name or f"Offer {offer.offer_id}"


def _recommendation(offer: Offer) -> Recommendation:
    return Recommendation(
        offer_id=offer.offer_id,
        buyer_name=_name(offer),
        overall_score=offer.overall_score,
        display_score=offer.display_score,
        message=(
            f"On the baseline score, the offer from {_name(offer)} is the strongest "
            f"overall option with a score of {offer.display_score}/100."
        ),
    )


def _risk_assessment(offer: Offer) -> RiskAssessment:
    count = offer.contingency_count
    noun = "contingency" if count == 1 else "contingencies"
    return RiskAssessment(
        offer_id=offer.offer_id,
        buyer_name=_name(offer),
        risk_score=offer.risk_score,
        contingency_count=count,
        message=(
            f"The {_name(offer)} offer has the lowest risk with {count} {noun}. "
            f"Consider this option if certainty of closing is your highest priority."
        ),
    )


def _net_proceeds_comparison(best: Offer, offers: list[Offer]) -> NetProceedsComparison:
    others = [o for o in offers if o is not best]
    base = f"The {_name(best)} offer provides the highest net proceeds at {_money(best.net_proceeds)}"

    if not others:
        return NetProceedsComparison(
            offer_id=best.offer_id,
            buyer_name=_name(best),
            net_proceeds=best.net_proceeds,
            runner_up_offer_id=None,
            difference=None,
            message=f"{base}.",
        )

    runner_up = _first_best(others, lambda o: o.net_proceeds)
    difference = best.net_proceeds - runner_up.net_proceeds
    if difference > 0:
        tail = f", which is {_money(difference)} more than the next best offer."
    else:
        tail = ", matching the next best offer."

    return NetProceedsComparison(
        offer_id=best.offer_id,
        buyer_name=_name(best),
        net_proceeds=best.net_proceeds,
        runner_up_offer_id=runner_up.offer_id,
        difference=difference,
        message=base + tail,
    )


def _negotiation_opportunities(
    offers: list[Offer],
    asking_price: Optional[float],
) -> list[NegotiationOpportunity]:
    opportunities = []
    for offer in offers:
        name = _name(offer)
        if offer.contingency_count >= MANY_CONTINGENCIES:
            opportunities.append(NegotiationOpportunity(
                offer.offer_id, name, "reduce_contingencies",
                f"Ask {name} to drop some of their {offer.contingency_count} contingencies "
                f"to strengthen their position.",
            ))
        if offer.closing_timeline_days > LONG_CLOSING_DAYS:
            opportunities.append(NegotiationOpportunity(
                offer.offer_id, name, "shorten_closing",
                f"Ask {name} to shorten their {offer.closing_timeline_days}-day closing timeline.",
            ))
        if asking_price and offer.price < asking_price:
            opportunities.append(NegotiationOpportunity(
                offer.offer_id, name, "improve_price",
                f"{name} is {_money(asking_price - offer.price)} below asking; "
                f"there may be room to counter on price.",
            ))
        if offer.buyer_type in (BuyerType.FIRST_TIME, BuyerType.OTHER) and "financing" in {
            c.lower() for c in offer.contingencies
        }:
            opportunities.append(NegotiationOpportunity(
                offer.offer_id, name, "financing_proof",
                f"Request a pre-approval letter from {name} to de-risk the financing contingency.",
            ))
    return opportunities


def generate_insights(
    offers: list[Offer],
    asking_price: Optional[float] = None,
) -> OfferInsights:
    """
    Summarize a set of offers.

    Args:
        offers: Offers to compare (may be empty)
        asking_price: Listing asking price, enables price negotiation hints

    Returns:
        OfferInsights; an empty input yields has_offers=False
    """
    if not offers:
        return OfferInsights(has_offers=False, message=NO_OFFERS_MESSAGE)

    best_overall = _first_best(offers, lambda o: o.overall_score)
    lowest_risk = _first_best(offers, lambda o: o.risk_score)
    highest_net = _first_best(offers, lambda o: o.net_proceeds)

    recommendation = _recommendation(best_overall)

    return OfferInsights(
        has_offers=True,
        offer_count=len(offers),
        recommendation=recommendation,
        risk_assessment=_risk_assessment(lowest_risk),
        net_proceeds_comparison=_net_proceeds_comparison(highest_net, offers),
        negotiation_opportunities=_negotiation_opportunities(offers, asking_price),
        message=recommendation.message,
    )
