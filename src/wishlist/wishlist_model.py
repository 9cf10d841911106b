from datetime import datetime
from typing import Optional

from utils.common_models import DocumentId, MarketplaceDocument


class WishlistModel(MarketplaceDocument):
    user_id: str
    property_id: DocumentId
    added_at: Optional[datetime] = None
