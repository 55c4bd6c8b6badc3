# storefront/utils/stripe_client.py
import logging
from dataclasses import dataclass, field
from typing import Optional

import stripe

from storefront.config import settings
from storefront.errors import GatewayError, ValidationError

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"


# Gateway-independent view of a payment intent
@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    customer: Optional[str] = None
    metadata: dict = field(default_factory=dict)
    receipt_url: Optional[str] = None


def _intent_info(intent) -> PaymentIntentInfo:
    receipt_url = None
    charge = intent.get("latest_charge")
    if charge is not None and not isinstance(charge, str):
        receipt_url = charge.get("receipt_url")
    customer = intent.get("customer")
    if customer is not None and not isinstance(customer, str):
        customer = customer.get("id")
    return PaymentIntentInfo(
        id=intent["id"],
        status=intent["status"],
        amount=intent["amount"],
        currency=intent["currency"],
        client_secret=intent.get("client_secret"),
        customer=customer,
        metadata=dict(intent.get("metadata") or {}),
        receipt_url=receipt_url,
    )


class StripeGateway:
    def __init__(self, api_key: str, webhook_secret: str):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_customer(self, email: str, name: str, user_id: int) -> str:
        try:
            customer = stripe.Customer.create(
                api_key=self.api_key,
                email=email,
                name=name,
                metadata={"user_id": str(user_id)},
            )
        except stripe.StripeError as e:
            logger.error("Stripe customer error: %s", e)
            raise GatewayError("Failed to create customer") from e
        return customer["id"]

    def retrieve_customer(self, customer_id: str) -> str:
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error("Stripe customer error: %s", e)
            raise GatewayError("Failed to retrieve customer") from e
        return customer["id"]

    def create_payment_intent(self, *, amount: int, currency: str, customer: str,
                              metadata: dict, shipping: Optional[dict] = None) -> PaymentIntentInfo:
        params = {
            "amount": amount,
            "currency": currency,
            "customer": customer,
            "metadata": metadata,
        }
        if shipping:
            params["shipping"] = shipping
        try:
            intent = stripe.PaymentIntent.create(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.error("Stripe create payment intent error: %s", e)
            raise GatewayError("Failed to create payment intent") from e
        return _intent_info(intent)

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntentInfo:
        try:
            intent = stripe.PaymentIntent.retrieve(
                intent_id, api_key=self.api_key, expand=["latest_charge"]
            )
        except stripe.StripeError as e:
            logger.error("Stripe retrieve payment intent error: %s", e)
            raise GatewayError("Failed to retrieve payment intent") from e
        return _intent_info(intent)

    def list_card_payment_methods(self, customer: str) -> list:
        try:
            methods = stripe.PaymentMethod.list(api_key=self.api_key, customer=customer, type="card")
        except stripe.StripeError as e:
            logger.error("Stripe list payment methods error: %s", e)
            raise GatewayError("Failed to list payment methods") from e
        return [
            {
                "id": m["id"],
                "brand": m["card"]["brand"],
                "last4": m["card"]["last4"],
                "exp_month": m["card"]["exp_month"],
                "exp_year": m["card"]["exp_year"],
            }
            for m in methods["data"]
        ]

    def attach_payment_method(self, payment_method_id: str, customer: str) -> None:
        try:
            stripe.PaymentMethod.attach(payment_method_id, api_key=self.api_key, customer=customer)
        except stripe.StripeError as e:
            logger.error("Stripe attach payment method error: %s", e)
            raise GatewayError("Failed to save payment method") from e

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        if not signature:
            raise ValidationError("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise ValidationError(f"Webhook Error: {e}") from e
        return {"type": event["type"], "object": event["data"]["object"]}


stripe_gateway = StripeGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_WEBHOOK_SECRET)

def get_payment_gateway() -> StripeGateway:
    return stripe_gateway
