"""
Tests for profile and wallet endpoints of the current user
"""
from unittest.mock import Mock

import pytest

from purvita.core.config import settings
from purvita.core.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from purvita.dependencies import (
    get_earnings_repository, get_profile_service, get_referral_service, get_settings_service, get_wallet_service,
)
from purvita.domain.commission import MemberEarnings, NetworkEarningsSummary
from purvita.domain.network import AppSettings, Profile
from purvita.domain.wallet import RechargeResult, WalletTransactionResult, WithdrawalStats

USER_ID = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def wallet_service(app):
    service = Mock()
    app.dependency_overrides[get_wallet_service] = lambda: service
    return service


@pytest.fixture
def referral_service(app):
    service = Mock()
    app.dependency_overrides[get_referral_service] = lambda: service
    return service


@pytest.fixture
def profile_service(app):
    service = Mock()
    app.dependency_overrides[get_profile_service] = lambda: service
    return service


class TestProfileEndpoints:
    """Test suite for /api/v1/profile"""

    def test_summary(self, client, user_headers, profile_service):
        profile_service.get_summary.return_value = {"profile": {"id": USER_ID}, "phase": 1}

        response = client.get("/api/v1/profile/summary", headers=user_headers)

        assert response.status_code == 200
        assert response.json() == {"status": "success", "data": {"profile": {"id": USER_ID}, "phase": 1}}
        profile_service.get_summary.assert_called_once_with(USER_ID)

    def test_summary_requires_session(self, client, profile_service):
        assert client.get("/api/v1/profile/summary").status_code == 401

    def test_summary_missing_profile(self, client, user_headers, profile_service):
        profile_service.get_summary.side_effect = NotFoundError("Profile", USER_ID)

        response = client.get("/api/v1/profile/summary", headers=user_headers)

        assert response.status_code == 404

    def test_update_profile(self, client, user_headers, profile_service):
        profile_service.update_profile.return_value = Profile(id=USER_ID, name="Ana", country="PE")

        response = client.patch("/api/v1/profile/summary", json={"name": "Ana", "country": "pe"}, headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["country"] == "PE"
        user_id, update = profile_service.update_profile.call_args.args
        assert update.model_dump(exclude_unset=True) == {"name": "Ana", "country": "pe"}

    def test_assign_referral(self, client, user_headers, referral_service):
        referral_service.assign_sponsor.return_value = {
            "sponsor_id": "sponsor", "sponsor_name": "Sam", "referral_code": "SAM1"
        }

        response = client.post("/api/v1/profile/referral", json={"referral_code": "SAM1"}, headers=user_headers)

        assert response.status_code == 200
        referral_service.assign_sponsor.assert_called_once_with(USER_ID, "SAM1")

    def test_assign_referral_cycle(self, client, user_headers, referral_service):
        referral_service.assign_sponsor.side_effect = ValidationError(
            "This referral would create a circular referral chain"
        )

        response = client.post("/api/v1/profile/referral", json={"referral_code": "SAM1"}, headers=user_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "This referral would create a circular referral chain"

    def test_confirm_recharge_refused_outside_test_mode(self, client, user_headers, wallet_service):
        response = client.post(
            "/api/v1/profile/recharge/confirm",
            json={"gateway": "stripe", "gateway_ref": "made-up-ref-1", "amount_cents": 99999999},
            headers=user_headers
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Recharges are confirmed by the payment webhook"
        wallet_service.record_recharge.assert_not_called()

    def test_confirm_recharge(self, client, user_headers, wallet_service, monkeypatch):
        monkeypatch.setattr(settings, "PAYMENT_TEST_MODE", True)
        wallet_service.record_recharge.return_value = RechargeResult(
            already_processed=False, transaction_id="txn-1", new_balance_cents=2500
        )

        response = client.post(
            "/api/v1/profile/recharge/confirm",
            json={"gateway": "paypal", "gateway_ref": "CAP-1", "amount_cents": 2500, "currency": "eur"},
            headers=user_headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["already_processed"] is False
        wallet_service.record_recharge.assert_called_once_with(USER_ID, 2500, "paypal", "CAP-1", "EUR")

    def test_earnings(self, client, user_headers, app):
        earnings_repo = Mock()
        earnings_repo.fetch_available_summary.return_value = NetworkEarningsSummary(
            total_available_cents=700,
            currency="EUR",
            members=[MemberEarnings(member_id="m1", total_cents=700)]
        )
        settings_service = Mock()
        settings_service.get_app_settings.return_value = AppSettings(currency="EUR")
        app.dependency_overrides[get_earnings_repository] = lambda: earnings_repo
        app.dependency_overrides[get_settings_service] = lambda: settings_service

        response = client.get("/api/v1/profile/earnings", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["total_available_cents"] == 700
        earnings_repo.fetch_available_summary.assert_called_once_with(USER_ID, default_currency="EUR")

    def test_transfer_earnings(self, client, user_headers, wallet_service):
        wallet_service.transfer_network_earnings.return_value = WalletTransactionResult(
            transaction_id="txn-9", previous_balance_cents=0, new_balance_cents=500
        )

        response = client.post("/api/v1/profile/earnings/transfer", json={"amount_cents": 500}, headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["new_balance_cents"] == 500

    def test_transfer_more_than_available(self, client, user_headers, wallet_service):
        wallet_service.transfer_network_earnings.side_effect = InsufficientBalanceError(
            USER_ID, 100, 500, message="Insufficient network earnings"
        )

        response = client.post("/api/v1/profile/earnings/transfer", json={"amount_cents": 500}, headers=user_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient network earnings"


class TestWalletEndpoints:
    """Test suite for /api/v1/wallet"""

    def test_balance(self, client, user_headers, wallet_service):
        wallet_service.get_balance.return_value = 4200

        response = client.get("/api/v1/wallet", headers=user_headers)

        assert response.json() == {"status": "success", "data": {"user_id": USER_ID, "balance_cents": 4200}}

    def test_withdrawal_stats(self, client, user_headers, wallet_service):
        wallet_service.get_withdrawal_stats.return_value = WithdrawalStats(
            total_withdrawn_24h_cents=1000,
            daily_limit_cents=50000,
            remaining_limit_cents=49000,
            current_balance_cents=4200,
            limit_exceeded=False
        )

        response = client.get("/api/v1/wallet/withdrawals/stats", headers=user_headers)

        assert response.json()["data"]["remaining_limit_cents"] == 49000

    def test_withdrawal_requires_positive_amount(self, client, user_headers, wallet_service):
        response = client.post("/api/v1/wallet/withdrawals", json={"amount_cents": 0}, headers=user_headers)

        assert response.status_code == 400
        wallet_service.request_withdrawal.assert_not_called()
