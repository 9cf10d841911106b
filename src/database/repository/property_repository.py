import re
from typing import Any, Dict, List, Optional

from pymongo.database import Database

from config.config import settings
from database.repository.base_repository import BaseRepository
from property.property_model import PropertyModel
from utils.common_models import utc_now

VerificationStatus = PropertyModel.VerificationStatus
SaleStatus = PropertyModel.SaleStatus


class PropertyRepository(BaseRepository[PropertyModel]):
    """Repository for listings"""

    collection_name = settings.Database.PROPERTIES_COLLECTION_NAME

    def __init__(self, db: Database):
        super().__init__(PropertyModel, db)

    @staticmethod
    def public_filter(**extra) -> Dict[str, Any]:
        """Listings visible to the public: verified and not sold"""
        return {
            'verificationStatus': VerificationStatus.VERIFIED.value,
            'status': {'$ne': SaleStatus.SOLD.value},
            **extra,
        }

    @staticmethod
    def excluding_agents(query: Dict[str, Any], agent_uids: List[str]) -> Dict[str, Any]:
        if agent_uids:
            return {**query, 'agentUid': {'$nin': agent_uids}}
        return query

    def get_public(self, location: Optional[str] = None,
                   exclude_agent_uids: Optional[List[str]] = None) -> List[PropertyModel]:
        query = self.public_filter()
        if location:
            query['location'] = {'$regex': re.escape(location), '$options': 'i'}
        query = self.excluding_agents(query, exclude_agent_uids or [])
        return self.get_by_filter(query)

    def get_advertised(self, exclude_agent_uids: Optional[List[str]] = None,
                       limit: Optional[int] = None) -> List[PropertyModel]:
        query = self.excluding_agents(self.public_filter(isAdvertised=True), exclude_agent_uids or [])
        sort = [('createdAt', -1)] if limit else None
        return self.get_by_filter(query, sort=sort, limit=limit)

    def get_by_agent(self, agent_uid: str) -> List[PropertyModel]:
        return self.get_by_filter({'agentUid': agent_uid})

    def mark_sold(self, property_id: Any, buyer_email: Optional[str]) -> int:
        return self.update_by_id(property_id, {
            'status': SaleStatus.SOLD.value,
            'soldAt': utc_now(),
            'soldTo': buyer_email,
        })

    def delete_by_agent(self, agent_uid: str) -> int:
        return self.delete_many({'agentUid': agent_uid})
