from datetime import datetime
from typing import Optional

from pydantic import Field

from utils.common_models import CaseInsensitiveEnum, DocumentId, MarketplaceDocument


class OfferStatus(str, CaseInsensitiveEnum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    BOUGHT = 'bought'


# Statuses in which a buyer still holds a live claim on a property
ACTIVE_OFFER_STATUSES = [OfferStatus.PENDING.value, OfferStatus.ACCEPTED.value]


class OfferModel(MarketplaceDocument):
    property_id: DocumentId = Field(..., description='Id of the property, in whichever format the property uses')
    property_title: Optional[str] = Field(default=None, description='Snapshot of the property title at offer time')
    property_location: Optional[str] = None
    property_image: Optional[str] = None
    agent_uid: Optional[str] = None
    agent_name: Optional[str] = None
    agent_email: Optional[str] = None
    # Older offers recorded the listing agent under this key only
    property_agent_uid: Optional[str] = None
    buyer_uid: str
    buyer_email: Optional[str] = None
    buyer_name: Optional[str] = None
    offered_amount: float = Field(..., description='Offer amount in major currency units')
    buying_date: Optional[str] = None
    status: OfferStatus = OfferStatus.PENDING
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None

    @property
    def listing_agent_uid(self) -> Optional[str]:
        return self.agent_uid or self.property_agent_uid

    def is_listed_by(self, agent_uid: str, agent_email: Optional[str] = None) -> bool:
        """Whether the offer targets a listing of the given agent, legacy offers included"""
        if self.listing_agent_uid:
            return self.listing_agent_uid == agent_uid
        return bool(agent_email) and self.agent_email == agent_email
