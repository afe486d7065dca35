"""
frontend/payments.py

Checkout against the payment gateway, brokered by the backend.

The frontend's only responsibilities are a correctly priced `amount` (kobo)
and a unique reference; the backend exchanges them for a hosted checkout URL.
"""

from __future__ import annotations

import secrets
import string
import time
from typing import Any, Dict, List, Optional

from frontend.adapters import extract_list, extract_object
from frontend.api_client import ApiClient
from frontend.config import ENABLE_VERBOSE_LOGGING, PAYMENT_CALLBACK_URL
from frontend.dev_observability import track_event
from frontend.errors import ApiError, FieldError, ValidationError
from frontend.models import (
    PaymentInitResult,
    PaymentMetadata,
    PaymentRequest,
    PaymentVerification,
    SubscriptionQuote,
)
from frontend.pricing import DEFAULT_PRICING_RULES, PricingRules, calculate_price

# Gateway minimum: 100 kobo (1 naira)
MIN_AMOUNT_KOBO = 100

_REFERENCE_ALPHABET = string.digits + string.ascii_lowercase


def generate_reference(now_ms: Optional[int] = None) -> str:
    """Unique payment reference, e.g. PAY_1718000000000_k3j9x0a1b."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(9))
    return f"PAY_{now_ms}_{suffix}"


def create_payment_data(
    quote: SubscriptionQuote,
    email: str,
    user_id: Optional[str] = None,
    callback_url: Optional[str] = None,
    rules: PricingRules = DEFAULT_PRICING_RULES,
) -> PaymentRequest:
    """Price a quote and build the initialize-payment payload."""
    return PaymentRequest(
        amount=calculate_price(quote, rules),
        email=email,
        reference=generate_reference(),
        callback_url=callback_url or PAYMENT_CALLBACK_URL,
        metadata=PaymentMetadata(
            plan=quote.plan,
            asset_count=quote.asset_count,
            user_count=quote.user_count,
            billing_cycle=quote.billing_cycle,
            user_id=user_id,
        ),
    )


def validate_payment_request(request: PaymentRequest) -> None:
    """
    Raises:
        ValidationError: Amount below the gateway minimum and/or missing email
    """
    errors = []
    if request.amount < MIN_AMOUNT_KOBO:
        errors.append(FieldError("amount", "Amount must be at least 100 kobo (1 naira)"))
    if not request.email or "@" not in request.email:
        errors.append(FieldError("email", "A valid email is required"))
    if errors:
        raise ValidationError(errors)


class PaymentService:
    """Payment gateway calls via the backend's /payments endpoints."""

    def __init__(self, client: ApiClient):
        self.client = client

    def initialize_payment(self, request: PaymentRequest) -> PaymentInitResult:
        """
        Exchange a priced payment request for a hosted checkout URL.

        Raises:
            ValidationError: Invalid amount or email (nothing is sent)
            ApiError subclasses: Backend/gateway failure
        """
        validate_payment_request(request)
        if ENABLE_VERBOSE_LOGGING:
            print(f"[PAYMENTS] Initializing payment: amount={request.amount} plan={request.metadata.plan.value}")

        body = self.client.post("/payments/initialize", json=request.model_dump(mode="json", by_alias=True))
        result = PaymentInitResult.model_validate(extract_object(body))
        track_event(self.client.session.state, "payment_initialized", {"reference": result.reference})
        return result

    def checkout(
        self,
        quote: SubscriptionQuote,
        email: str,
        user_id: Optional[str] = None,
        callback_url: Optional[str] = None,
    ) -> PaymentInitResult:
        """Price the quote and start a gateway checkout in one step."""
        return self.initialize_payment(create_payment_data(quote, email, user_id=user_id, callback_url=callback_url))

    def verify_payment(self, reference: str) -> PaymentVerification:
        if not reference:
            raise ValidationError([FieldError("reference", "Payment reference is required")])
        body = self.client.post("/payments/verify", json={"reference": reference})
        verification = PaymentVerification.model_validate(extract_object(body))
        track_event(self.client.session.state, "payment_verified", {
            "reference": reference,
            "status": verification.status,
        })
        return verification

    def payment_history(self, page: int = 1, limit: int = 10) -> List[Dict[str, Any]]:
        return extract_list(self.client.get("/payments/history", params={"page": page, "limit": limit}), "payments")

    def test_connection(self) -> Dict[str, Any]:
        """Gateway health check. Never raises; failures come back as success=False."""
        try:
            body = self.client.get("/payments/test")
        except ApiError as e:
            return {"success": False, "message": e.message or "Connection test failed"}
        payload = extract_object(body)
        return {
            "success": bool(payload.get("success", True)),
            "message": payload.get("message", "Connected"),
        }
