from typing import Optional

from pymongo.database import Database

from logger import logger
from config.config import settings
from account.account_model import UserData
from offer.offer_lifecycle import OfferLifecycle
from payment.payment_actions_model import *
from payment.payment_model import to_minor_units
from payment.stripe_manager import StripeManager
from utils.exceptions import RequestValidationFailed, UpstreamError


class PaymentActionsHandler:
    def __init__(self, db: Database, user_data: UserData, gateway: Optional[StripeManager]):
        self.user_data = user_data
        self.gateway = gateway
        self.lifecycle = OfferLifecycle(db)

    def _require_gateway(self) -> StripeManager:
        if self.gateway is None:
            raise UpstreamError("Payment system not properly configured. Please contact support.",
                                code='PAYMENT_GATEWAY_UNAVAILABLE', step='stripe_initialization')
        return self.gateway

    def create_payment_intent(self, request: CreatePaymentIntentRequest) -> CreatePaymentIntentResponse:
        gateway = self._require_gateway()
        if request.amount <= 0:
            raise RequestValidationFailed("Amount is required and must be a positive number",
                                          code='INVALID_AMOUNT', step='amount_validation')

        offer = self.lifecycle.payable_offer(request.offer_id, self.user_data)

        # The charge is always for the offer amount; a differing client amount is refused
        amount_minor_units = to_minor_units(offer.offered_amount, settings.Payment.MINOR_UNITS_PER_MAJOR)
        if to_minor_units(request.amount, settings.Payment.MINOR_UNITS_PER_MAJOR) != amount_minor_units:
            raise RequestValidationFailed("Amount does not match the accepted offer",
                                          code='AMOUNT_MISMATCH', step='amount_validation')

        charge = gateway.create_charge(
            amount_minor_units=amount_minor_units,
            currency=settings.Payment.CURRENCY,
            metadata={
                'offerId': str(offer.id),
                'buyerId': self.user_data.uid,
                'propertyTitle': offer.property_title or '',
                'buyerEmail': offer.buyer_email or '',
            },
        )
        logger.info(f"[PAYMENT] Payment intent {charge.charge_id} for offer {offer.id}: {amount_minor_units} minor units")
        return CreatePaymentIntentResponse(client_secret=charge.client_secret, payment_intent_id=charge.charge_id)

    def confirm_payment(self, request: ConfirmPaymentRequest) -> ConfirmPaymentResponse:
        gateway = self._require_gateway()
        charge = gateway.retrieve_charge(request.payment_intent_id)

        if not charge.succeeded:
            raise RequestValidationFailed("Payment not completed", code='PAYMENT_NOT_COMPLETED', status=charge.status)
        # An untagged charge belongs to no offer
        if charge.metadata.get('offerId') != request.offer_id:
            raise RequestValidationFailed("Payment does not belong to this offer", code='PAYMENT_OFFER_MISMATCH')
        offer = self.lifecycle.get_offer(request.offer_id)
        if charge.amount != to_minor_units(offer.offered_amount, settings.Payment.MINOR_UNITS_PER_MAJOR):
            raise RequestValidationFailed("Payment amount does not match the offer", code='PAYMENT_AMOUNT_MISMATCH')

        offer, report = self.lifecycle.confirm_sale(request.offer_id, self.user_data, charge.charge_id)
        logger.info(f"[PAYMENT] Payment {charge.charge_id} confirmed for offer {offer.id}")
        return ConfirmPaymentResponse(
            message="Payment confirmed and offer updated",
            offer=offer,
            incomplete_cleanup=report.failed,
        )
