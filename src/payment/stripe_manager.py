from typing import Dict, Optional

import stripe

from logger import logger
from config.config import settings
from gcp.secret import secret_mgr
from payment.payment_model import Charge
from utils.exceptions import UpstreamError


def _error_step(error: stripe.StripeError) -> str:
    if isinstance(error, stripe.AuthenticationError):
        return 'stripe_authentication'
    if isinstance(error, stripe.APIConnectionError):
        return 'stripe_connection'
    return 'stripe_api_error'


class StripeManager:
    """Payment gateway over Stripe PaymentIntents"""

    def __init__(self, api_key: str):
        self.api_key = api_key

    def _to_charge(self, intent) -> Charge:
        return Charge(
            charge_id=intent['id'],
            status=intent['status'],
            amount=intent.get('amount'),
            currency=intent.get('currency'),
            client_secret=intent.get('client_secret'),
            metadata=dict(intent.get('metadata') or {}),
        )

    def create_charge(self, amount_minor_units: int, currency: str, metadata: Dict[str, str]) -> Charge:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor_units,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={'enabled': True},
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.exception(f"[STRIPE] Payment intent creation failed: {e}")
            raise UpstreamError("Payment processing failed. Please try again.",
                                code='PAYMENT_GATEWAY_ERROR', step=_error_step(e))
        logger.info(f"[STRIPE] Payment intent {intent['id']} created for {amount_minor_units} {currency}")
        return self._to_charge(intent)

    def retrieve_charge(self, charge_id: str) -> Charge:
        try:
            intent = stripe.PaymentIntent.retrieve(charge_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.exception(f"[STRIPE] Payment intent retrieval failed for {charge_id}: {e}")
            raise UpstreamError("Unable to verify payment. Please try again.",
                                code='PAYMENT_GATEWAY_ERROR', step=_error_step(e))
        return self._to_charge(intent)


_stripe_instance = None


def get_stripe_manager() -> Optional[StripeManager]:
    """Stripe client with lazy initialization; None when no key is configured"""
    global _stripe_instance

    if _stripe_instance is None:
        api_key = secret_mgr.secret(settings.Secret.STRIPE_SECRET_KEY)
        if not api_key:
            logger.warning("[STRIPE] No Stripe secret key configured, payments disabled")
            return None
        _stripe_instance = StripeManager(api_key)
        logger.info("[STRIPE] Stripe initialized")

    return _stripe_instance
