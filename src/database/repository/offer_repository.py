from typing import Any, Dict, List, Optional

from pymongo.database import Database

from config.config import settings
from database.repository.base_repository import BaseRepository, id_candidates, reference_filter
from logger import logger
from offer.offer_model import ACTIVE_OFFER_STATUSES, OfferModel, OfferStatus
from utils.common_models import utc_now


class OfferRepository(BaseRepository[OfferModel]):
    """Repository for purchase offers"""

    collection_name = settings.Database.OFFERS_COLLECTION_NAME

    def __init__(self, db: Database):
        super().__init__(OfferModel, db)

    @staticmethod
    def agent_match(agent_uid: str, agent_email: Optional[str] = None) -> Dict[str, Any]:
        """
        Offers belonging to an agent's listings.

        Current offers carry `agentUid`; older ones only `propertyAgentUid`, and some only
        the agent's email.
        """
        clauses = [{'agentUid': agent_uid}, {'propertyAgentUid': agent_uid}]
        if agent_email:
            clauses.append({'agentEmail': agent_email})
        return {'$or': clauses}

    def find_active(self, buyer_uid: str, property_id: Any) -> Optional[OfferModel]:
        return self.get_one({
            'buyerUid': buyer_uid,
            **reference_filter('propertyId', property_id),
            'status': {'$in': ACTIVE_OFFER_STATUSES},
        })

    def get_by_buyer(self, buyer_uid: str) -> List[OfferModel]:
        return self.get_by_filter({'buyerUid': buyer_uid}, sort=[('createdAt', -1)])

    def get_bought_by_buyer(self, buyer_uid: str, buyer_email: Optional[str] = None) -> List[OfferModel]:
        query = {'$or': [{'buyerUid': buyer_uid}, {'buyerEmail': buyer_email}]} if buyer_email else {'buyerUid': buyer_uid}
        return self.get_by_filter({**query, 'status': OfferStatus.BOUGHT.value}, sort=[('paidAt', -1)])

    def get_for_agent(self, agent_uid: str, agent_email: Optional[str] = None) -> List[OfferModel]:
        return self.get_by_filter(self.agent_match(agent_uid, agent_email))

    def get_sold_for_agent(self, agent_uid: str, agent_email: Optional[str] = None) -> List[OfferModel]:
        query = {**self.agent_match(agent_uid, agent_email), 'status': OfferStatus.BOUGHT.value}
        return self.get_by_filter(query, sort=[('paidAt', -1)])

    def total_sold_amount(self, agent_uid: str, agent_email: Optional[str] = None) -> float:
        query = {**self.agent_match(agent_uid, agent_email), 'status': OfferStatus.BOUGHT.value}
        return self.sum(query, 'offeredAmount')

    def get_by_property(self, property_id: Any, statuses: Optional[List[str]] = None) -> List[OfferModel]:
        query = reference_filter('propertyId', property_id)
        if statuses:
            query['status'] = {'$in': statuses}
        return self.get_by_filter(query)

    def find_accepted(self, property_id: Any, exclude_offer_id: Any = None) -> Optional[OfferModel]:
        """The accepted offer on the property, other than `exclude_offer_id`"""
        query = {**reference_filter('propertyId', property_id), 'status': OfferStatus.ACCEPTED.value}
        if exclude_offer_id is not None:
            query['_id'] = {'$nin': id_candidates(exclude_offer_id)}
        return self.get_one(query)

    def reject_competitors(self, property_id: Any, exclude_offer_id: Any, statuses: List[str],
                           reason: Optional[str] = None) -> int:
        """Reject every other offer on the property whose status is in `statuses`"""
        fields = {'status': OfferStatus.REJECTED.value, 'respondedAt': utc_now()}
        if reason:
            fields['rejectedReason'] = reason
        query = {
            **reference_filter('propertyId', property_id),
            '_id': {'$nin': id_candidates(exclude_offer_id)},
            'status': {'$in': statuses},
        }
        rejected = self.update_many(query, fields)
        logger.info(f"[OFFER_REPOSITORY] Rejected {rejected} competing offers on property {property_id}")
        return rejected

    def cancel(self, offer_id: Any, buyer_uid: str) -> bool:
        """Delete the buyer's offer only while it is still pending"""
        return self.delete_by_id(offer_id, extra_filter={'buyerUid': buyer_uid, 'status': OfferStatus.PENDING.value})

    def delete_by_buyer(self, buyer_uid: str) -> int:
        return self.delete_many({'buyerUid': buyer_uid})
