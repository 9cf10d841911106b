"""
Offer lifecycle engine.

An offer moves pending -> accepted -> bought, or pending -> rejected, or is deleted
while pending (cancel). Accepting an offer rejects its pending competitors; confirming the
payment of an accepted offer sells the property, rejects the remaining pending offers
and purges the property from every wishlist.

The store offers no multi-document atomicity, so each transition is a conditional
single-document update on the offer (re-checking its status at write time) followed
by a fixed, ordered list of cascade steps. Every step is retried on store errors and
logged on its own. Cascade failures after a payment has been confirmed are recorded
and logged but never undo the sale, since the money has already moved.
"""

from typing import Any, Callable, List, NamedTuple, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError
from pydantic import BaseModel, Field

from logger import logger
from config.config import settings
from account.account_model import Role, UserData
from database.repository.offer_repository import OfferRepository
from database.repository.property_repository import PropertyRepository
from database.repository.user_repository import UserRepository
from database.repository.wishlist_repository import WishlistRepository
from offer.offer_model import OfferModel, OfferStatus
from property.property_model import PropertyModel
from utils.common_models import utc_now
from utils.exceptions import ConflictError, ForbiddenError, NotFoundError, RequestValidationFailed, UpstreamError
from utils.retry import store_write_retrying


class CascadeStep(NamedTuple):
    name: str
    action: Callable[[], Any]


class CascadeReport(BaseModel):
    completed: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class OfferLifecycle:
    def __init__(self, db: Database):
        self.offers = OfferRepository(db)
        self.properties = PropertyRepository(db)
        self.users = UserRepository(db)
        self.wishlists = WishlistRepository(db)

    # Lookups

    def get_offer(self, offer_id: str) -> OfferModel:
        if not offer_id or offer_id == 'undefined':
            raise RequestValidationFailed("Invalid offer ID", code='INVALID_OFFER_ID')
        offer = self.offers.get_by_id(offer_id)
        if offer is None:
            raise NotFoundError("Offer not found", code='OFFER_NOT_FOUND')
        return offer

    def _is_listing_agent(self, offer: OfferModel, property: Optional[PropertyModel], agent: UserData) -> bool:
        if property is not None and property.agent_uid:
            return property.is_owned_by(agent.uid)
        return offer.is_listed_by(agent.uid, agent.email)

    def _is_open_for_offers(self, property: PropertyModel) -> bool:
        """Only verified listings of agents in good standing take offers"""
        if property.verification_status != PropertyModel.VerificationStatus.VERIFIED:
            return False
        if property.agent_uid:
            agent = self.users.get_by_uid(property.agent_uid)
            if agent is not None and (agent.is_fraud or Role(agent.role) == Role.FRAUD):
                return False
        return True

    # Cascades

    def run_cascade(self, steps: List[CascadeStep], best_effort: bool) -> CascadeReport:
        """
        Apply steps in order, each retried on store errors.

        With `best_effort` a step that still fails is recorded and the remaining steps
        run; otherwise the failure aborts the cascade as an UpstreamError.
        """
        report = CascadeReport()
        for step in steps:
            logger.info(f"[OFFER_LIFECYCLE] Cascade step '{step.name}' started")
            try:
                result = store_write_retrying()(step.action)
            except PyMongoError as e:
                if not best_effort:
                    logger.exception(f"[OFFER_LIFECYCLE] Cascade step '{step.name}' failed: {e}")
                    raise UpstreamError(f"Failed to complete '{step.name}'", code='CASCADE_FAILED')
                logger.error(f"[OFFER_LIFECYCLE] Cascade step '{step.name}' failed, continuing: {e}")
                report.failed.append(step.name)
                continue
            logger.info(f"[OFFER_LIFECYCLE] Cascade step '{step.name}' completed: {result}")
            report.completed.append(step.name)
        return report

    # Transitions

    def submit(self, buyer: UserData, property_id: str, offered_amount: float, buying_date: Optional[str] = None,
               **snapshot) -> OfferModel:
        """Create a pending offer, at most one live offer per buyer and property"""
        if not property_id or property_id == 'undefined':
            raise RequestValidationFailed("Invalid property ID", code='INVALID_PROPERTY_ID')

        if self.offers.find_active(buyer.uid, property_id):
            raise ConflictError("You already have an active offer for this property", code='DUPLICATE_OFFER')

        property = self.properties.get_by_id(property_id)
        if property is None:
            raise NotFoundError("Property not found", code='PROPERTY_NOT_FOUND')
        if property.is_sold:
            raise ConflictError("Property has already been sold", code='PROPERTY_SOLD')
        if not self._is_open_for_offers(property):
            raise ConflictError("Property is not open for offers", code='PROPERTY_NOT_OPEN')
        if self.offers.find_accepted(property.id):
            raise ConflictError("Property already has an accepted offer", code='PROPERTY_UNDER_OFFER')

        offer = self.offers.create(OfferModel(
            property_id=property.id,
            property_title=property.title or snapshot.get('property_title'),
            property_location=property.location or snapshot.get('property_location'),
            property_image=property.image or snapshot.get('property_image'),
            agent_uid=property.agent_uid,
            agent_name=property.agent_name or snapshot.get('agent_name'),
            agent_email=property.agent_email or snapshot.get('agent_email'),
            buyer_uid=buyer.uid,
            buyer_email=buyer.email,
            buyer_name=buyer.display_name or snapshot.get('buyer_name'),
            offered_amount=offered_amount,
            buying_date=buying_date,
            status=OfferStatus.PENDING,
            created_at=utc_now(),
        ))
        logger.info(f"[OFFER_LIFECYCLE] Offer {offer.id} of {offered_amount} by {buyer.email} on property {property.id}")
        return offer

    def _respond(self, offer_id: str, agent: UserData, status: OfferStatus) -> OfferModel:
        offer = self.get_offer(offer_id)
        property = self.properties.get_by_id(offer.property_id)

        if not self._is_listing_agent(offer, property, agent):
            raise ForbiddenError("Not authorized", code='NOT_OFFER_AGENT')
        if property is not None and property.is_sold:
            raise ConflictError("Property is no longer open for offers", code='PROPERTY_SOLD')
        if offer.status != OfferStatus.PENDING.value:
            raise ConflictError("Offer already responded", code='OFFER_ALREADY_RESPONDED')
        if status == OfferStatus.ACCEPTED and self.offers.find_accepted(offer.property_id, exclude_offer_id=offer_id):
            raise ConflictError("Property already has an accepted offer", code='PROPERTY_UNDER_OFFER')

        # Status is re-checked by the store at write time
        updated = self.offers.find_one_and_update_by_id(
            offer_id,
            {'status': status.value, 'respondedAt': utc_now()},
            extra_filter={'status': OfferStatus.PENDING.value},
        )
        if updated is None:
            raise ConflictError("Offer already responded", code='OFFER_ALREADY_RESPONDED')

        logger.info(f"[OFFER_LIFECYCLE] Offer {offer_id} {status.value} by agent {agent.email}")
        return updated

    def accept(self, offer_id: str, agent: UserData) -> OfferModel:
        """
        Accept a pending offer and reject the competing pending offers on the property.

        Refused while another offer on the property is accepted, so a buyer who is
        already paying never loses the offer.
        """
        offer = self._respond(offer_id, agent, OfferStatus.ACCEPTED)
        self.run_cascade([
            CascadeStep('reject competing offers', lambda: self.offers.reject_competitors(
                offer.property_id,
                exclude_offer_id=offer_id,
                statuses=[OfferStatus.PENDING.value],
            )),
        ], best_effort=False)
        return offer

    def reject(self, offer_id: str, agent: UserData) -> OfferModel:
        return self._respond(offer_id, agent, OfferStatus.REJECTED)

    def cancel(self, offer_id: str, buyer: UserData):
        """Delete the buyer's offer; only pending offers can be cancelled"""
        if not self.offers.cancel(offer_id, buyer.uid):
            raise NotFoundError("Offer not found or cannot be cancelled", code='OFFER_NOT_CANCELLABLE')
        logger.info(f"[OFFER_LIFECYCLE] Offer {offer_id} cancelled by {buyer.email}")

    def mark_bought(self, offer_id: str, buyer: UserData, transaction_id: str) -> OfferModel:
        """
        Record a payment made outside the gateway flow.

        Kept for older clients: the offer becomes bought without the property being
        marked sold or competitors being rejected.
        """
        offer = self.get_offer(offer_id)
        if offer.buyer_uid != buyer.uid:
            raise ForbiddenError("Not authorized", code='NOT_OFFER_BUYER')
        if offer.status != OfferStatus.ACCEPTED.value:
            raise ConflictError("Offer not accepted yet", code='OFFER_NOT_ACCEPTED')

        updated = self.offers.find_one_and_update_by_id(
            offer_id,
            {'status': OfferStatus.BOUGHT.value, 'transactionId': transaction_id, 'paidAt': utc_now()},
            extra_filter={'status': OfferStatus.ACCEPTED.value},
        )
        if updated is None:
            raise ConflictError("Offer not accepted yet", code='OFFER_NOT_ACCEPTED')
        logger.info(f"[OFFER_LIFECYCLE] Offer {offer_id} marked bought by {buyer.email} with transaction {transaction_id}")
        return updated

    def payable_offer(self, offer_id: str, buyer: UserData) -> OfferModel:
        """The accepted offer the buyer is about to pay for"""
        offer = self.get_offer(offer_id)
        if offer.status != OfferStatus.ACCEPTED.value:
            raise ConflictError("Offer must be accepted before payment", code='OFFER_NOT_ACCEPTED')
        if offer.buyer_email != buyer.email and offer.buyer_uid != buyer.uid:
            raise ForbiddenError("You can only pay for your own offers", code='NOT_OFFER_BUYER')
        return offer

    def confirm_sale(self, offer_id: str, buyer: UserData, transaction_id: str) -> tuple[OfferModel, CascadeReport]:
        """
        Complete the sale of an accepted offer whose payment has been confirmed.

        The offer update is the commit point. Selling the property, rejecting pending
        competitors and purging wishlists follow in that order on a best-effort basis.
        Confirming an already bought offer with the same transaction replays the cascade.
        """
        offer = self.get_offer(offer_id)
        if offer.buyer_uid != buyer.uid and offer.buyer_email != buyer.email:
            raise ForbiddenError("You can only pay for your own offers", code='NOT_OFFER_BUYER')

        if offer.status == OfferStatus.BOUGHT.value:
            if offer.transaction_id != transaction_id:
                raise ConflictError("Offer has already been paid", code='OFFER_ALREADY_BOUGHT')
            logger.info(f"[OFFER_LIFECYCLE] Offer {offer_id} already bought with {transaction_id}, replaying cascade")
            bought = offer
        else:
            if offer.status != OfferStatus.ACCEPTED.value:
                raise ConflictError("Offer must be accepted before payment", code='OFFER_NOT_ACCEPTED')
            try:
                bought = store_write_retrying()(
                    self.offers.find_one_and_update_by_id,
                    offer_id,
                    {'status': OfferStatus.BOUGHT.value, 'transactionId': transaction_id, 'paidAt': utc_now()},
                    extra_filter={'status': OfferStatus.ACCEPTED.value},
                )
            except PyMongoError as e:
                logger.exception(f"[OFFER_LIFECYCLE] Failed to mark offer {offer_id} bought: {e}")
                raise UpstreamError("Failed to update offer", code='OFFER_UPDATE_FAILED')
            if bought is None:
                raise ConflictError("Offer must be accepted before payment", code='OFFER_NOT_ACCEPTED')
            logger.info(f"[OFFER_LIFECYCLE] Offer {offer_id} bought with transaction {transaction_id}")

        property_id = bought.property_id
        report = self.run_cascade([
            CascadeStep('mark property sold', lambda: self.properties.mark_sold(property_id, bought.buyer_email)),
            CascadeStep('reject pending offers', lambda: self.offers.reject_competitors(
                property_id,
                exclude_offer_id=offer_id,
                statuses=[OfferStatus.PENDING.value],
                reason=settings.Offers.SOLD_REJECTION_REASON,
            )),
            CascadeStep('purge wishlists', lambda: self.wishlists.delete_by_property(property_id)),
        ], best_effort=True)

        if not report.ok:
            logger.error(f"[OFFER_LIFECYCLE] Sale of property {property_id} left cleanup incomplete: {report.failed}")
        return bought, report
