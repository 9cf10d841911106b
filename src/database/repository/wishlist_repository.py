from typing import Any, List, Optional

from pymongo.database import Database

from config.config import settings
from database.repository.base_repository import BaseRepository, reference_filter
from wishlist.wishlist_model import WishlistModel


class WishlistRepository(BaseRepository[WishlistModel]):
    """Repository for wishlist entries, unique per (user, property)"""

    collection_name = settings.Database.WISHLISTS_COLLECTION_NAME

    def __init__(self, db: Database):
        super().__init__(WishlistModel, db)

    def get_by_user(self, user_id: str) -> List[WishlistModel]:
        return self.get_by_filter({'userId': user_id}, sort=[('addedAt', -1)])

    def get_entry(self, user_id: str, property_id: Any) -> Optional[WishlistModel]:
        return self.get_one({'userId': user_id, **reference_filter('propertyId', property_id)})

    def delete_by_property(self, property_id: Any) -> int:
        return self.delete_many(reference_filter('propertyId', property_id))

    def delete_by_user(self, user_id: str) -> int:
        return self.delete_many({'userId': user_id})
