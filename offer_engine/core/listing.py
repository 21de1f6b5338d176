"""
Listing data model.

A listing is a property for sale owned by exactly one user. Offers
are collected against it and compared using its priority profile.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ListingStatus(Enum):
    """Lifecycle status of the listing (never deleted)."""

    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"


@dataclass
class Address:
    """Property address details."""

    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""

    @property
    def one_line(self) -> str:
        parts = [self.street, self.city, f"{self.state} {self.zip_code}".strip()]
        return ", ".join(p for p in parts if p)


@dataclass
class Listing:
    """
    Property listing tracked by one owning user.

    Only status and loan balance change after creation.
    """

    listing_id: str
    owner_id: str
    address: Address
    asking_price: float

    # Outstanding mortgage; None means nothing recorded
    loan_balance: Optional[float] = None

    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    sqft: Optional[int] = None
    description: str = ""
    image_url: Optional[str] = None

    status: ListingStatus = ListingStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.now)

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "listing_id": self.listing_id,
            "owner_id": self.owner_id,
            "address": {
                "street": self.address.street,
                "city": self.address.city,
                "state": self.address.state,
                "zip_code": self.address.zip_code,
            },
            "asking_price": self.asking_price,
            "loan_balance": self.loan_balance,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "sqft": self.sqft,
            "description": self.description,
            "image_url": self.image_url,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Listing":
        """Create a Listing from its dictionary representation."""
        address = data.get("address", {})
        created_at = data.get("created_at")
        return cls(
            listing_id=data["listing_id"],
            owner_id=data["owner_id"],
            address=Address(
                street=address.get("street", ""),
                city=address.get("city", ""),
                state=address.get("state", ""),
                zip_code=address.get("zip_code", ""),
            ),
            asking_price=float(data["asking_price"]),
            loan_balance=(
                float(data["loan_balance"]) if data.get("loan_balance") is not None else None
            ),
            bedrooms=data.get("bedrooms"),
            bathrooms=data.get("bathrooms"),
            sqft=data.get("sqft"),
            description=data.get("description", ""),
            image_url=data.get("image_url"),
            status=ListingStatus(data.get("status", "active")),
            created_at=datetime.fromisoformat(created_at) if created_at else datetime.now(),
        )
