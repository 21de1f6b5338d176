"""
API module for the offer engine.

Repository, extraction and billing adapters, and the service layer
that the web app drives.
"""

from .storage import OfferStore, SequenceIdGenerator, UuidIdGenerator, make_id_generator
from .extraction import ExtractionResult, ExtractionService
from .billing import BillingDispatcher, BillingGateway
from .service import OfferService

__all__ = [
    "OfferStore",
    "SequenceIdGenerator",
    "UuidIdGenerator",
    "make_id_generator",
    "ExtractionResult",
    "ExtractionService",
    "BillingDispatcher",
    "BillingGateway",
    "OfferService",
]
