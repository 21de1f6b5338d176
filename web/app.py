"""
Offer Engine - FastAPI Web Application

JSON API over the offer service: listings, priorities, offers,
counter-offers, comparison, insights, extraction and usage.

The caller is identified by the X-User-Id header; authentication
happens upstream.
"""

from typing import Literal, Optional, Union

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from offer_engine import __version__
from offer_engine.api import ExtractionService, OfferService, OfferStore, make_id_generator
from offer_engine.config import Settings
from offer_engine.core import (
    BuyerType,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ListingStatus,
    NotFoundError,
    OfferGraphError,
    OfferSource,
    OfferStatus,
    ValidationError,
)
from offer_engine.logging_config import get_logger, setup_logging

settings = Settings.from_env()
setup_logging(settings)
logger = get_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Offer Engine",
    description="Offer scoring, comparison and counter-offer API",
    version=__version__,
)

# Global service instance
_service: Optional[OfferService] = None


def get_service() -> OfferService:
    """Get or create the global service instance."""
    global _service
    if _service is None:
        store = OfferStore(settings.storage_path, make_id_generator(settings.id_strategy))
        _service = OfferService(store, extraction=ExtractionService())
    return _service


def current_user(x_user_id: str = Header(..., min_length=1)) -> str:
    return x_user_id


# Error mapping

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError):
    return JSONResponse(status_code=403, content={"detail": "Forbidden"})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(InvalidTransitionError)
async def transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "errors": exc.details()},
    )


@app.exception_handler(OfferGraphError)
async def graph_error_handler(request: Request, exc: OfferGraphError):
    logger.error("Malformed offer graph", extra={"error": str(exc), "path": request.url.path})
    return JSONResponse(status_code=500, content={"detail": "Offer history is inconsistent"})


# Pydantic models for request bodies

class ApiModel(BaseModel):
    """Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


Number = Union[float, str]


class ListingCreate(ApiModel):
    address: str
    city: str
    state: str
    zip_code: str
    asking_price: Number
    loan_balance: Optional[Number] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    sqft: Optional[int] = None
    description: str = ""
    image_url: Optional[str] = None


class ListingUpdate(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    status: Optional[str] = None
    loan_balance: Optional[Number] = None


class PrioritiesUpdate(ApiModel):
    offer_price: Optional[int] = Field(None, ge=1, le=10)
    net_proceeds: Optional[int] = Field(None, ge=1, le=10)
    closing_timeline: Optional[int] = Field(None, ge=1, le=10)
    contingencies: Optional[int] = Field(None, ge=1, le=10)
    buyer_qualification: Optional[int] = Field(None, ge=1, le=10)


class OfferTerms(ApiModel):
    buyer_name: Optional[str] = None
    buyer_type: Optional[str] = None
    price: Optional[Number] = None
    agent_commission: Optional[Number] = None
    commission_unit: Optional[Literal["percent", "dollar"]] = Field(
        None, validation_alias=AliasChoices("commission_unit", "commissionUnit", "commissionType")
    )
    closing_timeline_days: Optional[Number] = None
    contingencies: Optional[list[str]] = None
    notes: Optional[str] = None


class OfferCreate(OfferTerms):
    listing_id: str
    source: str = OfferSource.MANUAL.value
    needs_review: bool = False
    document_ref: Optional[str] = None


class OfferUpdate(OfferTerms):
    needs_review: Optional[bool] = None


class StatusUpdate(ApiModel):
    status: str


class ExtractRequest(ApiModel):
    listing_id: str
    document_text: str
    document_ref: Optional[str] = None


# Routes

@app.get("/api/health")
async def health(service: OfferService = Depends(get_service)):
    """Health check endpoint."""
    return {"status": "ok", "version": __version__, **service.store.count()}


@app.get("/api/enums")
async def get_enums():
    """Get available enum values for form dropdowns."""
    return {
        "buyer_types": [e.value for e in BuyerType],
        "offer_statuses": [e.value for e in OfferStatus],
        "listing_statuses": [e.value for e in ListingStatus],
        "offer_sources": [e.value for e in OfferSource],
    }


@app.post("/api/listings")
async def create_listing(
    data: ListingCreate,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Create a listing with default priorities."""
    listing = service.create_listing(user_id, data.model_dump())
    return JSONResponse(content=listing.to_dict(), status_code=201)


@app.get("/api/listings")
async def list_listings(
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    listings = service.list_listings(user_id)
    return {"listings": [l.to_dict() for l in listings], "count": len(listings)}


@app.get("/api/listings/{listing_id}")
async def get_listing(
    listing_id: str,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    return service.get_listing(user_id, listing_id).to_dict()


@app.patch("/api/listings/{listing_id}")
async def update_listing(
    listing_id: str,
    data: ListingUpdate,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Change listing status and/or loan balance."""
    changes = data.model_dump(exclude_unset=True)
    return service.update_listing(user_id, listing_id, changes).to_dict()


@app.get("/api/listings/{listing_id}/priorities")
async def get_priorities(
    listing_id: str,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    return service.get_priorities(user_id, listing_id).to_dict()


@app.patch("/api/listings/{listing_id}/priorities")
async def update_priorities(
    listing_id: str,
    data: PrioritiesUpdate,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    patch = data.model_dump(exclude_unset=True)
    return service.update_priorities(user_id, listing_id, patch).to_dict()


@app.get("/api/listings/{listing_id}/offers")
async def list_offers(
    listing_id: str,
    latest_only: bool = False,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    offers = service.list_offers(user_id, listing_id, latest_only=latest_only)
    return {"offers": [o.to_dict() for o in offers], "count": len(offers)}


@app.get("/api/listings/{listing_id}/comparison")
async def compare_offers(
    listing_id: str,
    weighted: bool = True,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Rank live offers, optionally weighted by the listing's priorities."""
    priorities, ranked = service.compare_offers(user_id, listing_id, weighted=weighted)
    return {
        "priorities": priorities.to_dict(),
        "weighted": weighted,
        "offers": [r.to_dict() for r in ranked],
    }


@app.get("/api/listings/{listing_id}/insights")
async def get_insights(
    listing_id: str,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    return service.insights(user_id, listing_id).to_dict()


@app.post("/api/offers")
async def create_offer(
    data: OfferCreate,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Submit a new offer (first version of a negotiation thread)."""
    payload = data.model_dump(exclude_none=True)
    listing_id = payload.pop("listing_id")
    offer = service.submit_offer(user_id, listing_id, payload)
    return JSONResponse(content=offer.to_dict(), status_code=201)


@app.post("/api/offers/extract")
async def extract_offer(
    data: ExtractRequest,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Extract offer terms from document text for review before submission."""
    result = service.extract_offer(user_id, data.listing_id, data.document_text, data.document_ref)
    return result.to_dict()


@app.get("/api/offers/{offer_id}")
async def get_offer(
    offer_id: str,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    return service.get_offer(user_id, offer_id).to_dict()


@app.patch("/api/offers/{offer_id}")
async def update_offer(
    offer_id: str,
    data: OfferUpdate,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Edit terms of an offer that has not been countered."""
    changes = data.model_dump(exclude_none=True)
    return service.update_offer(user_id, offer_id, changes).to_dict()


@app.post("/api/offers/{offer_id}/status")
async def change_offer_status(
    offer_id: str,
    data: StatusUpdate,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    return service.change_status(user_id, offer_id, data.status).to_dict()


@app.post("/api/offers/{offer_id}/counter/preview")
async def preview_counter_offer(
    offer_id: str,
    data: OfferTerms,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Show the counter-offer and its diff without saving it."""
    draft, diff = service.preview_counter(user_id, offer_id, data.model_dump(exclude_none=True))
    return {"draft": draft.to_dict(), "diff": diff.to_dict()}


@app.post("/api/offers/{offer_id}/counter")
async def create_counter_offer(
    offer_id: str,
    data: OfferTerms,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    """Create a counter-offer; unspecified terms inherit from the countered offer."""
    counter = service.counter_offer(user_id, offer_id, data.model_dump(exclude_none=True))
    return JSONResponse(content=counter.to_dict(), status_code=201)


@app.get("/api/offers/{offer_id}/history")
async def get_offer_history(
    offer_id: str,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    history = service.history(user_id, offer_id)
    return {"offers": [o.to_dict() for o in history], "count": len(history)}


@app.get("/api/offers/{offer_id}/diff/{other_offer_id}")
async def get_offer_diff(
    offer_id: str,
    other_offer_id: str,
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    return service.diff(user_id, offer_id, other_offer_id).to_dict()


@app.get("/api/usage")
async def list_usage(
    user_id: str = Depends(current_user),
    service: OfferService = Depends(get_service),
):
    events = service.usage_events(user_id)
    return {"usage_events": [e.to_dict() for e in events], "count": len(events)}


# Run with: uvicorn web.app:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
