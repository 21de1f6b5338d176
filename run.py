#!/usr/bin/env python3
"""
Offer Engine - Demo

Walks through the core functionality against an in-memory store:

- Offer normalization (percent vs dollar commission)
- Net proceeds, risk score and overall score
- Counter-offers and the version history
- Offer comparison, baseline and priority-weighted
- Comparative insights

Run with: python run.py
"""

import json

from offer_engine.api import OfferService, OfferStore
from offer_engine.core import StaleVersionError

SELLER = "seller-1"


def create_sample_listing(service: OfferService):
    """Create a demo listing with an outstanding loan."""
    return service.create_listing(SELLER, {
        "address": "742 Evergreen Terrace",
        "city": "Springfield",
        "state": "OR",
        "zip_code": "97403",
        "asking_price": 725_000,
        "loan_balance": 200_000,
        "bedrooms": 4,
        "bathrooms": 2.5,
        "sqft": 2400,
    })


def print_offer(offer) -> None:
    commission = f"${offer.agent_commission:,.0f}"
    if offer.commission_was_percent:
        commission += f" ({offer.commission_percent:g}%)"
    print(f"  [{offer.offer_id} v{offer.version_number}] {offer.buyer_name} ({offer.buyer_type.value})")
    print(f"       Price: ${offer.price:,.0f}  Commission: {commission}")
    print(f"       Net proceeds: ${offer.net_proceeds:,.0f}")
    print(f"       Risk: {offer.risk_score}/10  Closing: {offer.closing_timeline_days} days")
    print(f"       Overall: {offer.overall_score} (display {offer.display_score})")


# =============================================================================
# Demos
# =============================================================================

def demo_scoring(service: OfferService, listing_id: str):
    """Percent commission, risk and overall score."""
    print("\n" + "=" * 60)
    print("SCORING DEMO")
    print("=" * 60)

    offer = service.submit_offer(SELLER, listing_id, {
        "buyerName": "The Hendersons",
        "buyerType": "pre-approved",
        "price": 700_000,
        "agentCommission": 3,
        "closingTimelineDays": 30,
        "contingencies": ["inspection", "Inspection"],
    })
    print("\n--- Commission 3 is read as 3% ---")
    print_offer(offer)

    dollars = service.submit_offer(SELLER, listing_id, {
        "buyer_name": "Pat Investor",
        "buyer_type": "investor",
        "price": 700_000,
        "agent_commission": 25_000,
        "closing_timeline_days": 21,
        "contingencies": [],
    })
    print("\n--- Commission 25000 is read as dollars ---")
    print_offer(dollars)
    return offer


def demo_counter_offers(service: OfferService, offer):
    """Counter twice, then show the thread and a diff."""
    print("\n" + "=" * 60)
    print("COUNTER-OFFER DEMO")
    print("=" * 60)

    v2 = service.counter_offer(SELLER, offer.offer_id, {"price": 690_000})
    v3 = service.counter_offer(SELLER, v2.offer_id, {
        "closing_timeline_days": 21,
        "contingencies": [],
    })

    print(f"\nHistory (queried from {v2.offer_id}):")
    for version in service.history(SELLER, v2.offer_id):
        print_offer(version)

    diff = service.diff(SELLER, offer.offer_id, v3.offer_id)
    print(f"\nDiff v1 -> v3: {diff.summary()}")

    try:
        service.counter_offer(SELLER, offer.offer_id, {"price": 710_000})
    except StaleVersionError as e:
        print(f"\nCountering a superseded version: {e}")
    return v3


def demo_comparison(service: OfferService, listing_id: str):
    """Baseline and priority-weighted rankings."""
    print("\n" + "=" * 60)
    print("COMPARISON DEMO")
    print("=" * 60)

    service.submit_offer(SELLER, listing_id, {
        "buyer_name": "Cautious Buyer",
        "buyer_type": "first time",
        "price": 735_000,
        "closing_timeline_days": 60,
        "contingencies": ["financing", "inspection", "appraisal", "sale of home", "HOA", "title"],
    })

    _, ranked = service.compare_offers(SELLER, listing_id, weighted=False)
    print("\n--- Baseline ranking ---")
    for entry in ranked:
        print(f"  #{entry.rank} {entry.offer.buyer_name}: {entry.score:.0f} "
              f"(display {entry.offer.display_score})")

    service.update_priorities(SELLER, listing_id, {"offer_price": 10, "contingencies": 1})
    priorities, ranked = service.compare_offers(SELLER, listing_id)
    print(f"\n--- Weighted ranking {priorities.weights()} ---")
    for entry in ranked:
        print(f"  #{entry.rank} {entry.offer.buyer_name}: {entry.weighted.total_score:.1f}")


def demo_insights(service: OfferService, listing_id: str):
    """Comparative insights over the live offers."""
    print("\n" + "=" * 60)
    print("INSIGHTS DEMO")
    print("=" * 60)

    insights = service.insights(SELLER, listing_id)
    print(json.dumps(insights.to_dict(), indent=2))


def main():
    service = OfferService(OfferStore())
    listing = create_sample_listing(service)
    print(f"Listing {listing.listing_id}: {listing.address.one_line}")
    print(f"  Asking ${listing.asking_price:,.0f}, loan ${listing.loan_balance:,.0f}")

    offer = demo_scoring(service, listing.listing_id)
    demo_counter_offers(service, offer)
    demo_comparison(service, listing.listing_id)
    demo_insights(service, listing.listing_id)

    print("\n" + "=" * 60)
    print(f"Usage events recorded: {len(service.usage_events(SELLER))}")
    print("=" * 60)


if __name__ == "__main__":
    main()
