"""
Offer Engine

Collects purchase offers against a listing, scores them and threads
counter-offers through an append-only version history.

Modules:
  core  - listing/offer models, normalizer, calculators, scorers,
          version graph, insights
  api   - repository, extraction and billing adapters, service layer

Usage:
    from offer_engine.core import normalize_offer, calculate_overall_score
    from offer_engine.api import OfferService, OfferStore
"""

__version__ = "1.0.0"
