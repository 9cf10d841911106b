from typing import List, Optional

from pydantic import Field

from offer.offer_model import OfferModel
from utils.common_models import CamelModel


class CreatePaymentIntentRequest(CamelModel):
    amount: float = Field(..., description='Amount in major units; must match the accepted offer')
    offer_id: str = Field(..., min_length=1)


class CreatePaymentIntentResponse(CamelModel):
    client_secret: Optional[str] = None
    payment_intent_id: str
    success: bool = True
    step: str = 'completed'


class ConfirmPaymentRequest(CamelModel):
    payment_intent_id: str = Field(..., min_length=1)
    offer_id: str = Field(..., min_length=1)


class ConfirmPaymentResponse(CamelModel):
    success: bool = True
    message: str
    offer: OfferModel
    incomplete_cleanup: List[str] = Field(default_factory=list, description='Post-sale steps that failed and were logged')
