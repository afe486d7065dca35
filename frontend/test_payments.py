# frontend/test_payments.py
# Unit tests for payment initialization and verification

import pytest
import re
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from frontend.api_client import ApiClient
from frontend.dev_observability import event_names
from frontend.errors import NetworkError, ValidationError
from frontend.models import PaymentMetadata, PaymentRequest, SubscriptionQuote
from frontend.payments import PaymentService, create_payment_data, generate_reference
from frontend.pricing import calculate_price


def mock_client():
    client = MagicMock(spec=ApiClient)
    client.session = MagicMock(state={})
    return client


def make_request(amount=500_000, email="ada@example.com"):
    return PaymentRequest(
        amount=amount,
        email=email,
        reference="PAY_1_abc",
        callback_url="http://localhost:8501/payment/callback",
        metadata=PaymentMetadata(plan="starter", asset_count=1, user_count=1, billing_cycle="monthly"),
    )


def test_reference_format():
    assert re.fullmatch(r"PAY_1718000000000_[0-9a-z]{9}", generate_reference(1718000000000))


def test_references_are_unique():
    assert len({generate_reference() for _ in range(200)}) == 200


def test_create_payment_data_uses_calculated_price():
    quote = SubscriptionQuote(plan="professional", asset_count=20, user_count=2, billing_cycle="annual")
    request = create_payment_data(quote, "ada@example.com", user_id="u1", callback_url="https://app.test/cb")
    assert request.amount == calculate_price(quote)
    assert request.callback_url == "https://app.test/cb"
    assert request.reference.startswith("PAY_")
    assert request.metadata.user_id == "u1"


def test_initialize_payment_payload():
    client = mock_client()
    client.post.return_value = {"data": {
        "authorization_url": "https://checkout.test/abc",
        "access_code": "abc",
        "reference": "PAY_1_abc",
    }}
    result = PaymentService(client).initialize_payment(make_request())

    assert result.authorization_url == "https://checkout.test/abc"
    path = client.post.call_args.args[0]
    payload = client.post.call_args.kwargs["json"]
    assert path == "/payments/initialize"
    assert payload["amount"] == 500_000
    assert payload["metadata"] == {
        "plan": "starter",
        "assetCount": 1,
        "userCount": 1,
        "billingCycle": "monthly",
        "userId": None,
    }
    assert "payment_initialized" in event_names(client.session.state)


def test_initialize_payment_rejects_bad_input_without_calling_backend():
    client = mock_client()
    with pytest.raises(ValidationError) as exc_info:
        PaymentService(client).initialize_payment(make_request(amount=99, email="not-an-email"))
    assert set(exc_info.value.by_field()) == {"amount", "email"}
    client.post.assert_not_called()


def test_checkout_prices_and_initializes():
    client = mock_client()
    client.post.return_value = {"authorization_url": "https://checkout.test/x", "reference": "PAY_2_x"}
    quote = SubscriptionQuote(plan="starter", asset_count=5, user_count=1)
    PaymentService(client).checkout(quote, "ada@example.com")
    assert client.post.call_args.kwargs["json"]["amount"] == calculate_price(quote)


def test_initialize_payment_propagates_network_error():
    client = mock_client()
    client.post.side_effect = NetworkError("Request timed out after 20s. Please try again.")
    with pytest.raises(NetworkError):
        PaymentService(client).initialize_payment(make_request())


def test_verify_payment():
    client = mock_client()
    client.post.return_value = {"data": {
        "status": "success",
        "amount": 500_000,
        "reference": "PAY_1_abc",
        "transactionId": "t-99",
    }}
    verification = PaymentService(client).verify_payment("PAY_1_abc")
    assert verification.is_successful
    assert verification.transaction_id == "t-99"
    client.post.assert_called_once_with("/payments/verify", json={"reference": "PAY_1_abc"})


def test_verify_payment_requires_reference():
    with pytest.raises(ValidationError):
        PaymentService(mock_client()).verify_payment("")


def test_payment_history():
    client = mock_client()
    client.get.return_value = {"data": {"payments": [{"reference": "PAY_1_abc"}]}}
    assert PaymentService(client).payment_history(page=2) == [{"reference": "PAY_1_abc"}]
    client.get.assert_called_once_with("/payments/history", params={"page": 2, "limit": 10})


def test_connection_check_never_raises():
    client = mock_client()
    client.get.side_effect = NetworkError("Cannot connect to backend")
    assert PaymentService(client).test_connection() == {"success": False, "message": "Cannot connect to backend"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
