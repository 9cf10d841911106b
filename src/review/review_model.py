from datetime import datetime
from typing import Optional

from utils.common_models import DocumentId, MarketplaceDocument


class ReviewModel(MarketplaceDocument):
    property_id: DocumentId
    property_title: Optional[str] = None
    property_image: Optional[str] = None
    property_agent_uid: Optional[str] = None
    property_agent_name: Optional[str] = None
    reviewer_uid: str
    reviewer_name: Optional[str] = None
    reviewer_email: Optional[str] = None
    reviewer_image: Optional[str] = None
    review_text: str
    created_at: Optional[datetime] = None

    def is_written_by(self, uid: str) -> bool:
        return self.reviewer_uid == uid
