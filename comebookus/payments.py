# comebookus/payments.py

"""
Stripe payment intents for bookings that require payment up front.

Only intent creation lives here. Capture happens on the client with the
returned client secret, and the outcome comes back through the payments
webhook.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import stripe

from comebookus.config import settings

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """The payment processor could not create an intent."""


@dataclass(frozen=True)
class PaymentIntentRef:
    id: str
    client_secret: Optional[str]


class StripeGateway:
    def __init__(self, api_key: Optional[str] = None, currency: str = settings.payment_currency):
        self.api_key = api_key or settings.stripe_secret_key
        self.currency = currency

    def create_payment_intent(self, amount: int, metadata: dict) -> PaymentIntentRef:
        """Create an intent for ``amount`` minor units."""
        if amount <= 0:
            raise ValueError(f"Invalid amount: {amount} must be positive")
        if not self.api_key:
            raise PaymentError("STRIPE_SECRET_KEY is not configured")

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=self.currency,
                metadata={key: str(value) for key, value in metadata.items()},
            )
        except stripe.StripeError as e:
            logger.error("Stripe payment intent creation failed: %s", e)
            raise PaymentError(str(e)) from e

        logger.info("Payment intent %s created for %s %s", intent.id, amount, self.currency)
        return PaymentIntentRef(id=intent.id, client_secret=intent.client_secret)
