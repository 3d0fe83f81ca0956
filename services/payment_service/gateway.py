"""
Thin client for the Stripe REST API.

Only the two calls checkout needs: creating a PaymentIntent and verifying
webhook signatures. Requests are form-encoded and authenticated with the
secret key as the HTTP basic-auth username.
"""
import hashlib
import hmac
import json
import time
from typing import Optional

import httpx
import structlog

from shared.config import settings
from shared.errors import PaymentGatewayError, ValidationError

logger = structlog.get_logger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


def compute_signature(secret: str, timestamp: int, payload: bytes) -> str:
    signed = f"{timestamp}.".encode() + payload
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def _parse_signature_header(header: str):
    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


class StripeGateway:
    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        base_url: str = "https://api.stripe.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        tolerance: int = SIGNATURE_TOLERANCE_SECONDS,
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.tolerance = tolerance

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.secret_key, ""),
            timeout=self.timeout,
            transport=self.transport,
        )

    async def create_payment_intent(self, amount_cents: int, currency: str, metadata: Optional[dict] = None) -> dict:
        if not self.secret_key:
            raise PaymentGatewayError("Payment gateway is not configured")

        form = {
            "amount": str(amount_cents),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in (metadata or {}).items():
            form[f"metadata[{key}]"] = str(value)

        try:
            async with self._client() as client:
                resp = await client.post("/payment_intents", data=form)
        except httpx.HTTPError as e:
            logger.error("payment_gateway_unreachable", error=str(e))
            raise PaymentGatewayError("Payment gateway unreachable") from e

        if resp.status_code >= 400:
            try:
                message = resp.json().get("error", {}).get("message", resp.text)
            except ValueError:
                message = resp.text
            logger.error("payment_intent_rejected", status_code=resp.status_code, error=message)
            raise PaymentGatewayError(f"Failed to create payment intent: {message}")

        intent = resp.json()
        logger.info("payment_intent_created", payment_intent_id=intent.get("id"), amount=amount_cents)
        return intent

    def construct_event(self, payload: bytes, sig_header: Optional[str], now: Optional[float] = None) -> dict:
        """Verify the Stripe-Signature header and decode the event body."""
        if not self.webhook_secret:
            raise ValidationError("Webhook secret is not configured")
        if not sig_header:
            raise ValidationError("Missing Stripe-Signature header")

        timestamp, signatures = _parse_signature_header(sig_header)
        if timestamp is None or not timestamp.isdigit() or not signatures:
            raise ValidationError("Malformed Stripe-Signature header")

        expected = compute_signature(self.webhook_secret, int(timestamp), payload)
        if not any(hmac.compare_digest(expected, sig) for sig in signatures):
            raise ValidationError("Invalid webhook signature")

        now = time.time() if now is None else now
        if abs(now - int(timestamp)) > self.tolerance:
            raise ValidationError("Webhook timestamp outside the tolerance window")

        try:
            return json.loads(payload)
        except ValueError as e:
            raise ValidationError("Webhook body is not valid JSON") from e


_gateway = StripeGateway(
    secret_key=settings.STRIPE_SECRET_KEY,
    webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    base_url=settings.STRIPE_API_BASE,
    timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
)


def get_payment_gateway() -> StripeGateway:
    return _gateway
