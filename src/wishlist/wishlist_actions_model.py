from typing import Optional, Union

from pydantic import Field

from property.property_model import PropertyModel
from utils.common_models import CamelModel
from wishlist.wishlist_model import WishlistModel


class AddToWishlistRequest(CamelModel):
    property_id: str = Field(..., min_length=1)


class WishlistResponse(CamelModel):
    message: str
    wishlist: WishlistModel


class WishlistItem(WishlistModel):
    """A wishlist entry together with the current state of its property"""
    property_details: PropertyModel
    verification_status: Optional[str] = None
    property_title: Optional[str] = None
    property_location: Optional[str] = None
    price_range: Optional[Union[PropertyModel.PriceRange, str]] = None
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    property_image: Optional[str] = None
    is_sold: bool = False
