from typing import List, Optional

from pydantic import Field

from offer.offer_model import OfferModel
from utils.common_models import CamelModel


class CreateOfferRequest(CamelModel):
    property_id: str = Field(..., min_length=1)
    offered_amount: float = Field(..., gt=0, description='Offer amount in major currency units')
    buying_date: Optional[str] = None
    # Client-side snapshot, used only where the listing lacks the value
    property_title: Optional[str] = None
    property_location: Optional[str] = None
    property_image: Optional[str] = None
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    buyer_name: Optional[str] = None


class OfferResponse(CamelModel):
    message: str
    offer: OfferModel


class MarkOfferBoughtRequest(CamelModel):
    transaction_id: str = Field(..., min_length=1)


class BoughtPropertiesResponse(CamelModel):
    properties: List[OfferModel]
    total_purchases: int
    total_spent: float


class TotalSoldAmountResponse(CamelModel):
    total_sold_amount: float
