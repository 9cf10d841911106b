from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from utils.common_models import CaseInsensitiveEnum, MarketplaceDocument


class PropertyModel(MarketplaceDocument):
    class VerificationStatus(str, CaseInsensitiveEnum):
        PENDING = 'pending'
        VERIFIED = 'verified'
        REJECTED = 'rejected'

    class SaleStatus(str, CaseInsensitiveEnum):
        ACTIVE = 'active'
        SOLD = 'sold'

    class PriceRange(BaseModel):
        min: Optional[float] = None
        max: Optional[float] = None

    title: str = Field(..., description='Listing title')
    location: str = Field(..., description='Free-form location, searched case-insensitively')
    image: Optional[str] = Field(default=None, description='URL of the listing image')
    description: Optional[str] = None
    price_range: Optional[Union[PriceRange, str]] = Field(
        default=None, description='Structured {min, max} range or a display string derived from min/max price'
    )
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    agent_uid: Optional[str] = Field(default=None, description='Uid of the listing agent')
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    is_advertised: bool = False
    status: SaleStatus = SaleStatus.ACTIVE
    sold_at: Optional[datetime] = None
    sold_to: Optional[str] = Field(default=None, description='Email of the buyer once sold')
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_sold(self) -> bool:
        return self.status == PropertyModel.SaleStatus.SOLD.value

    def is_owned_by(self, agent_uid: str) -> bool:
        return bool(self.agent_uid) and self.agent_uid == agent_uid

    @property
    def effective_min_price(self) -> Optional[float]:
        """Lower price bound, from the structured range or the flat min price"""
        if isinstance(self.price_range, PropertyModel.PriceRange) and self.price_range.min is not None:
            return self.price_range.min
        return self.min_price


def format_price(value: float) -> str:
    if float(value).is_integer():
        return f"${int(value):,}"
    return f"${value:,.2f}"


def price_range_text(min_price: float, max_price: float, on_request: str) -> str:
    """Display text for a listing's price bounds; non-positive bounds count as unset"""
    if min_price > 0 and max_price > 0:
        return f"{format_price(min_price)} - {format_price(max_price)}"
    if min_price > 0:
        return f"From {format_price(min_price)}"
    if max_price > 0:
        return f"Up to {format_price(max_price)}"
    return on_request
