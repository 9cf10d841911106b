from typing import Any, List, Optional

from pymongo.database import Database

from config.config import settings
from database.repository.base_repository import BaseRepository, reference_filter
from review.review_model import ReviewModel


class ReviewRepository(BaseRepository[ReviewModel]):
    """Repository for property reviews"""

    collection_name = settings.Database.REVIEWS_COLLECTION_NAME

    def __init__(self, db: Database):
        super().__init__(ReviewModel, db)

    def get_by_property(self, property_id: Any) -> List[ReviewModel]:
        return self.get_by_filter(reference_filter('propertyId', property_id), sort=[('createdAt', -1)])

    def get_by_reviewer(self, reviewer_uid: str) -> List[ReviewModel]:
        return self.get_by_filter({'reviewerUid': reviewer_uid}, sort=[('createdAt', -1)])

    def get_latest(self, limit: Optional[int] = None) -> List[ReviewModel]:
        return self.get_by_filter({}, sort=[('createdAt', -1)], limit=limit)

    def delete_by_reviewer(self, reviewer_uid: str) -> int:
        return self.delete_many({'reviewerUid': reviewer_uid})
