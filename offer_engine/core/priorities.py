"""
Priority profile: per-listing weights for offer comparison.

Five integer sliders (1-10, default 5) expressing how much the seller
cares about price, net proceeds, closing speed, contingency risk and
buyer qualification.
"""

from dataclasses import dataclass, replace
from typing import Any

from .validation import ValidationResult, validate_priority_weight

DEFAULT_PRIORITY_WEIGHT = 5

PRIORITY_FIELDS = (
    "offer_price",
    "net_proceeds",
    "closing_timeline",
    "contingencies",
    "buyer_qualification",
)


@dataclass(frozen=True)
class PriorityProfile:
    """Seller priorities for one listing."""

    listing_id: str
    offer_price: int = DEFAULT_PRIORITY_WEIGHT
    net_proceeds: int = DEFAULT_PRIORITY_WEIGHT
    closing_timeline: int = DEFAULT_PRIORITY_WEIGHT
    contingencies: int = DEFAULT_PRIORITY_WEIGHT
    buyer_qualification: int = DEFAULT_PRIORITY_WEIGHT

    def weights(self) -> dict[str, int]:
        """Raw slider values keyed by priority name."""
        return {name: getattr(self, name) for name in PRIORITY_FIELDS}

    @property
    def total_weight(self) -> int:
        return sum(self.weights().values())

    def normalized(self) -> dict[str, float]:
        """Weights scaled to sum to 1.0."""
        total = self.total_weight
        return {name: value / total for name, value in self.weights().items()}

    def apply_patch(self, patch: dict[str, Any]) -> "PriorityProfile":
        """
        Return a copy with the given sliders changed.

        Unknown keys are ignored; every provided value must be an
        integer in [1, 10].

        Raises:
            ValidationError: If any provided value is out of range
        """
        result = ValidationResult()
        changes = {}
        for name in PRIORITY_FIELDS:
            if name not in patch or patch[name] is None:
                continue
            weight = validate_priority_weight(patch[name], name, result)
            if weight is not None:
                changes[name] = weight
        result.raise_for_errors()
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {"listing_id": self.listing_id, **self.weights()}

    @classmethod
    def from_dict(cls, data: dict) -> "PriorityProfile":
        return cls(listing_id=data["listing_id"]).apply_patch(data)
