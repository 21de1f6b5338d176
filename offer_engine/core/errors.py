"""Error hierarchy for the offer engine."""


class OfferEngineError(Exception):
    """Base exception for the offer engine."""
    pass


class NotFoundError(OfferEngineError):
    """Referenced listing, offer or priority profile does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")


class ForbiddenError(OfferEngineError):
    """Caller does not own the parent listing."""

    def __init__(self, user_id: str, listing_id: str):
        self.user_id = user_id
        self.listing_id = listing_id
        super().__init__(f"User '{user_id}' does not own listing '{listing_id}'")


class ConflictError(OfferEngineError):
    """Operation conflicts with the current state of a record."""
    pass


class OfferFrozenError(ConflictError):
    """Offer has been countered and its terms can no longer be edited."""

    def __init__(self, offer_id: str, fields: list[str]):
        self.offer_id = offer_id
        self.fields = fields
        super().__init__(
            f"Offer '{offer_id}' has counter-offers; cannot edit {', '.join(fields)}"
        )


class StaleVersionError(ConflictError):
    """Counter-offer attempted against a version that is no longer the latest."""

    def __init__(self, offer_id: str, latest_offer_id: str, latest_version: int):
        self.offer_id = offer_id
        self.latest_offer_id = latest_offer_id
        self.latest_version = latest_version
        super().__init__(
            f"Offer '{offer_id}' is not the latest version; "
            f"counter '{latest_offer_id}' (v{latest_version}) instead"
        )


class OfferGraphError(OfferEngineError):
    """Parent-pointer chain is malformed (cycle or dangling parent)."""
    pass


class ExtractionFailure(OfferEngineError):
    """External extraction collaborator failed or returned unusable data."""
    pass


class BillingFailure(OfferEngineError):
    """External billing collaborator failed."""
    pass
