from typing import List

from pymongo.database import Database

from logger import logger
from account.account_model import UserData
from database.repository.offer_repository import OfferRepository
from offer.offer_actions_model import *
from offer.offer_lifecycle import OfferLifecycle
from offer.offer_model import OfferModel, OfferStatus
from utils.common_models import MessageResponse


class OfferActionsHandler:
    def __init__(self, db: Database, user_data: UserData):
        self.user_data = user_data
        self.offers = OfferRepository(db)
        self.lifecycle = OfferLifecycle(db)

    def make_offer(self, request: CreateOfferRequest) -> OfferResponse:
        offer = self.lifecycle.submit(
            self.user_data,
            property_id=request.property_id,
            offered_amount=request.offered_amount,
            buying_date=request.buying_date,
            **request.model_dump(exclude={'property_id', 'offered_amount', 'buying_date'}, exclude_none=True),
        )
        return OfferResponse(message="Offer made successfully", offer=offer)

    def my_offers(self) -> List[OfferModel]:
        return self.offers.get_by_buyer(self.user_data.uid)

    def my_bought_properties(self) -> BoughtPropertiesResponse:
        bought = self.offers.get_bought_by_buyer(self.user_data.uid, self.user_data.email)
        return BoughtPropertiesResponse(
            properties=bought,
            total_purchases=len(bought),
            total_spent=sum(offer.offered_amount or 0 for offer in bought),
        )

    def cancel_offer(self, offer_id: str) -> MessageResponse:
        self.lifecycle.cancel(offer_id, self.user_data)
        return MessageResponse(message="Offer cancelled successfully")

    def requested_offers(self) -> List[OfferModel]:
        """Every offer on the agent's listings, pending ones first, then newest first"""
        offers = self.offers.get_for_agent(self.user_data.uid, self.user_data.email)
        offers.sort(key=lambda offer: offer.created_at.timestamp() if offer.created_at else 0, reverse=True)
        offers.sort(key=lambda offer: offer.status != OfferStatus.PENDING.value)
        logger.debug(f"[OFFER] Found {len(offers)} offers for agent {self.user_data.email}")
        return offers

    def sold_offers(self) -> List[OfferModel]:
        return self.offers.get_sold_for_agent(self.user_data.uid, self.user_data.email)

    def total_sold_amount(self) -> TotalSoldAmountResponse:
        return TotalSoldAmountResponse(
            total_sold_amount=self.offers.total_sold_amount(self.user_data.uid, self.user_data.email)
        )

    def accept_offer(self, offer_id: str) -> OfferResponse:
        return OfferResponse(message="Offer accepted", offer=self.lifecycle.accept(offer_id, self.user_data))

    def reject_offer(self, offer_id: str) -> OfferResponse:
        return OfferResponse(message="Offer rejected", offer=self.lifecycle.reject(offer_id, self.user_data))

    def mark_bought(self, offer_id: str, request: MarkOfferBoughtRequest) -> OfferResponse:
        offer = self.lifecycle.mark_bought(offer_id, self.user_data, request.transaction_id)
        return OfferResponse(message="Payment completed, offer marked as bought", offer=offer)
