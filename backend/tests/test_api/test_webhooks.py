"""
Tests for the payment webhook endpoint
"""
from unittest.mock import Mock

import pytest

from purvita.core.exceptions import InactiveAffiliateError
from purvita.dependencies import get_order_creation_service, get_wallet_service
from purvita.domain.order import OrderCreationResult
from purvita.domain.wallet import RechargeResult

WEBHOOK_URL = "/api/v1/webhooks/payments"
SECRET_HEADERS = {"X-Webhook-Secret": "test-webhook-secret"}


@pytest.fixture
def order_service(app):
    service = Mock()
    service.order_exists_for_transaction.return_value = False
    service.create_order_from_payment.return_value = OrderCreationResult(order_id="order-1", commissions_created=1)
    app.dependency_overrides[get_order_creation_service] = lambda: service
    return service


@pytest.fixture
def wallet_service(app):
    service = Mock()
    app.dependency_overrides[get_wallet_service] = lambda: service
    return service


def order_event(**overrides):
    event = {
        "type": "order",
        "user_id": "buyer-1",
        "gateway": "stripe",
        "gateway_transaction_id": "pi_123",
        "amount_cents": 10000,
        "currency": "usd",
        "metadata": {"affiliateId": "affiliate-1", "saleChannel": "affiliate_store"},
        "cart_items": [{"product_id": "p1", "quantity": 1, "price_cents": 10000}],
    }
    event.update(overrides)
    return event


class TestPaymentWebhook:
    """Test suite for POST /api/v1/webhooks/payments"""

    def test_missing_secret(self, client, order_service, wallet_service):
        response = client.post(WEBHOOK_URL, json=order_event())

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid webhook secret"}
        order_service.create_order_from_payment.assert_not_called()

    def test_wrong_secret(self, client, order_service, wallet_service):
        response = client.post(WEBHOOK_URL, json=order_event(), headers={"X-Webhook-Secret": "nope"})

        assert response.status_code == 401

    def test_secret_not_configured(self, client, order_service, wallet_service, monkeypatch):
        from purvita.core.config import settings
        monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", "")

        response = client.post(WEBHOOK_URL, json=order_event(), headers=SECRET_HEADERS)

        assert response.status_code == 503

    def test_creates_order(self, client, order_service, wallet_service):
        # Act
        response = client.post(WEBHOOK_URL, json=order_event(), headers=SECRET_HEADERS)

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "created"
        assert body["data"]["order_id"] == "order-1"

        params = order_service.create_order_from_payment.call_args.args[0]
        assert params.user_id == "buyer-1"
        assert params.total_cents == 10000
        assert params.currency == "USD"
        assert params.gateway.value == "stripe"
        assert params.affiliate_id == "affiliate-1"

    def test_existing_transaction_is_acknowledged(self, client, order_service, wallet_service):
        order_service.order_exists_for_transaction.return_value = True

        response = client.post(WEBHOOK_URL, json=order_event(), headers=SECRET_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"status": "duplicate"}
        order_service.create_order_from_payment.assert_not_called()

    def test_concurrent_duplicate(self, client, order_service, wallet_service):
        order_service.create_order_from_payment.return_value = OrderCreationResult(
            order_id="order-1", duplicate=True
        )

        response = client.post(WEBHOOK_URL, json=order_event(), headers=SECRET_HEADERS)

        assert response.json()["status"] == "duplicate"

    def test_affiliate_rejection_is_400(self, client, order_service, wallet_service):
        order_service.create_order_from_payment.side_effect = InactiveAffiliateError("affiliate-1")

        response = client.post(WEBHOOK_URL, json=order_event(), headers=SECRET_HEADERS)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Affiliate does not have an active subscription"
        assert body["details"] == {"affiliate_id": "affiliate-1"}

    def test_wallet_recharge(self, client, order_service, wallet_service):
        wallet_service.record_recharge.return_value = RechargeResult(
            already_processed=False, transaction_id="txn-1", new_balance_cents=2500
        )

        response = client.post(
            WEBHOOK_URL,
            json=order_event(type="wallet_recharge", amount_cents=2500, metadata={}, cart_items=[]),
            headers=SECRET_HEADERS
        )

        assert response.status_code == 200
        assert response.json()["status"] == "recharged"
        wallet_service.record_recharge.assert_called_once_with("buyer-1", 2500, "stripe", "pi_123", "USD")
        order_service.create_order_from_payment.assert_not_called()

    def test_wallet_recharge_replay(self, client, order_service, wallet_service):
        wallet_service.record_recharge.return_value = RechargeResult(already_processed=True)

        response = client.post(
            WEBHOOK_URL, json=order_event(type="wallet_recharge"), headers=SECRET_HEADERS
        )

        assert response.json()["status"] == "duplicate"

    def test_invalid_payload(self, client, order_service, wallet_service):
        response = client.post(WEBHOOK_URL, json={"type": "order"}, headers=SECRET_HEADERS)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"
