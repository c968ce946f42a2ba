"""
Tests for OrderCreationService
Affiliate fraud checks and order creation from confirmed payments
"""
from unittest.mock import Mock

import pytest

from purvita.core.exceptions import (
    AffiliateMismatchError, AffiliateValidationError, InactiveAffiliateError,
    InvalidAffiliateError, OrderCreationError, SelfReferralError,
)
from purvita.domain.commission import CommissionEntry
from purvita.domain.network import Profile, Subscription
from purvita.domain.order import CartItem, OrderCreationParams, PaymentGateway
from purvita.services.order_creation_service import OrderCreationService

BUYER = "buyer-1"
AFFILIATE = "affiliate-1"


@pytest.fixture
def deps():
    profile_repo = Mock()
    profile_repo.find_by_id.return_value = Profile(id=AFFILIATE, referral_code="ANA123")

    subscription_repo = Mock()
    subscription_repo.find_latest.return_value = Subscription(id="sub-1", user_id=AFFILIATE, status="active")

    order_repo = Mock()
    order_repo.insert_paid_order.return_value = ("order-1", False)

    commission_service = Mock()
    commission_service.calculate_and_create_commissions.return_value = [
        CommissionEntry(user_id="sponsor", member_id=AFFILIATE, level=1, amount_cents=1000)
    ]

    return {
        "order_repo": order_repo,
        "profile_repo": profile_repo,
        "subscription_repo": subscription_repo,
        "audit_repo": Mock(),
        "commission_service": commission_service,
    }


@pytest.fixture
def service(deps):
    return OrderCreationService(**deps)


def make_params(**overrides):
    data = {
        "user_id": BUYER,
        "total_cents": 10000,
        "currency": "USD",
        "gateway": PaymentGateway.STRIPE,
        "gateway_transaction_id": "pi_123",
        "metadata": {},
        "cart_items": [CartItem(product_id="p1", product_name="Omega 3", quantity=2, price_cents=5000)],
    }
    data.update(overrides)
    return OrderCreationParams(**data)


class TestValidateAffiliate:
    """Test suite for affiliate fraud checks"""

    def test_valid_affiliate(self, service):
        profile = service.validate_affiliate(BUYER, AFFILIATE, "ANA123")

        assert profile.id == AFFILIATE

    def test_self_referral(self, service, deps):
        with pytest.raises(SelfReferralError):
            service.validate_affiliate(BUYER, BUYER)

        # rejected before any lookup
        deps["profile_repo"].find_by_id.assert_not_called()

    def test_unknown_affiliate(self, service, deps):
        deps["profile_repo"].find_by_id.return_value = None

        with pytest.raises(InvalidAffiliateError) as exc_info:
            service.validate_affiliate(BUYER, AFFILIATE)

        assert exc_info.value.message == "Invalid affiliate ID"
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("subscription", [
        None,
        Subscription(id="s", user_id=AFFILIATE, status="canceled"),
        Subscription(id="s", user_id=AFFILIATE, status="active", waitlisted=True),
    ])
    def test_inactive_affiliate(self, service, deps, subscription):
        deps["subscription_repo"].find_latest.return_value = subscription

        with pytest.raises(InactiveAffiliateError):
            service.validate_affiliate(BUYER, AFFILIATE)

    def test_subscription_lookup_failure(self, service, deps):
        deps["subscription_repo"].find_latest.side_effect = RuntimeError("timeout")

        with pytest.raises(AffiliateValidationError) as exc_info:
            service.validate_affiliate(BUYER, AFFILIATE)

        assert exc_info.value.message == "Error validating affiliate subscription"

    def test_referral_code_mismatch(self, service):
        with pytest.raises(AffiliateMismatchError):
            service.validate_affiliate(BUYER, AFFILIATE, "OTHER")

    def test_referral_code_is_optional(self, service):
        assert service.validate_affiliate(BUYER, AFFILIATE, None).id == AFFILIATE


class TestCreateOrderFromPayment:
    """Test suite for create_order_from_payment"""

    def test_main_store_order(self, service, deps):
        # Act
        result = service.create_order_from_payment(make_params())

        # Assert
        assert result.order_id == "order-1"
        assert result.duplicate is False
        assert result.affiliate_id is None

        kwargs = deps["order_repo"].insert_paid_order.call_args.kwargs
        assert kwargs["purchase_source"] == "main_store"
        assert kwargs["gateway"] == "stripe"
        assert kwargs["gateway_transaction_id"] == "pi_123"
        assert kwargs["metadata"]["created_from"] == "payment_webhook"
        assert "affiliate_id" not in kwargs["metadata"]

        deps["order_repo"].insert_items.assert_called_once()
        action, entity_type, entity_id, audit_meta = deps["audit_repo"].log_action.call_args.args
        assert (action, entity_type, entity_id) == ("ORDER_PAID", "order", "order-1")
        assert audit_meta["product_names"] == "Omega 3"

    def test_affiliate_order(self, service, deps):
        # Arrange
        params = make_params(metadata={"affiliateId": AFFILIATE, "affiliateReferralCode": "ANA123"})

        # Act
        result = service.create_order_from_payment(params)

        # Assert
        assert result.affiliate_id == AFFILIATE
        assert result.commissions_created == 1

        kwargs = deps["order_repo"].insert_paid_order.call_args.kwargs
        assert kwargs["purchase_source"] == "affiliate_store"
        assert kwargs["metadata"]["affiliate_id"] == AFFILIATE
        assert kwargs["metadata"]["sale_channel"] == "affiliate_store"

        commission_call = deps["commission_service"].calculate_and_create_commissions.call_args
        assert commission_call.args == (BUYER, 10000)
        assert commission_call.kwargs["order_id"] == "order-1"

    def test_invalid_affiliate_creates_no_order(self, service, deps):
        params = make_params(metadata={"affiliateId": BUYER})

        with pytest.raises(SelfReferralError):
            service.create_order_from_payment(params)

        deps["order_repo"].insert_paid_order.assert_not_called()

    def test_snake_case_self_referral_is_rejected(self, service, deps):
        params = make_params(metadata={"affiliate_id": BUYER, "sale_channel": "affiliate_store"})

        with pytest.raises(SelfReferralError):
            service.create_order_from_payment(params)

        deps["order_repo"].insert_paid_order.assert_not_called()
        deps["commission_service"].calculate_and_create_commissions.assert_not_called()

    def test_snake_case_referral_code_is_checked(self, service, deps):
        params = make_params(metadata={"affiliate_id": AFFILIATE, "affiliate_referral_code": "OTHER"})

        with pytest.raises(AffiliateMismatchError):
            service.create_order_from_payment(params)

        deps["order_repo"].insert_paid_order.assert_not_called()

    def test_attribution_keys_are_not_copied_without_an_affiliate(self, service, deps):
        # Arrange
        params = make_params(metadata={"sale_channel": "affiliate_store", "affiliateId": "", "coupon": "SPRING"})

        # Act
        service.create_order_from_payment(params)

        # Assert
        stored = deps["order_repo"].insert_paid_order.call_args.kwargs["metadata"]
        assert stored["coupon"] == "SPRING"
        for key in ("affiliateId", "affiliate_id", "sale_channel", "saleChannel"):
            assert key not in stored

        commission_meta = deps["commission_service"].calculate_and_create_commissions.call_args.kwargs
        assert "affiliate_id" not in commission_meta["order_metadata"]

    def test_duplicate_transaction(self, service, deps):
        """Test that a replayed gateway transaction does not redo side effects"""
        # Arrange
        deps["order_repo"].insert_paid_order.return_value = ("order-existing", True)

        # Act
        result = service.create_order_from_payment(make_params())

        # Assert
        assert result.duplicate is True
        assert result.order_id == "order-existing"
        deps["order_repo"].insert_items.assert_not_called()
        deps["audit_repo"].log_action.assert_not_called()
        deps["commission_service"].calculate_and_create_commissions.assert_not_called()

    def test_insert_failure_raises_order_creation_error(self, service, deps):
        deps["order_repo"].insert_paid_order.side_effect = RuntimeError("connection reset")

        with pytest.raises(OrderCreationError) as exc_info:
            service.create_order_from_payment(make_params())

        assert "connection reset" in exc_info.value.message

    def test_side_effect_failures_do_not_fail_the_order(self, service, deps):
        # Arrange
        deps["audit_repo"].log_action.side_effect = RuntimeError("audit down")
        deps["order_repo"].insert_items.side_effect = RuntimeError("items failed")
        deps["commission_service"].calculate_and_create_commissions.side_effect = RuntimeError("boom")

        # Act
        result = service.create_order_from_payment(make_params())

        # Assert
        assert result.order_id == "order-1"
        assert result.commissions_created == 0

    def test_order_without_items(self, service, deps):
        service.create_order_from_payment(make_params(cart_items=[]))

        deps["order_repo"].insert_items.assert_not_called()


class TestOrderExistsForTransaction:

    def test_missing_reference(self, service):
        assert service.order_exists_for_transaction(None) is False

    def test_existing(self, service, deps):
        deps["order_repo"].find_id_by_transaction.return_value = "order-1"

        assert service.order_exists_for_transaction("pi_123") is True

    def test_lookup_failure_counts_as_missing(self, service, deps):
        deps["order_repo"].find_id_by_transaction.side_effect = RuntimeError("db down")

        assert service.order_exists_for_transaction("pi_123") is False
