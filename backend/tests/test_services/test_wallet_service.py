"""
Tests for WalletService
"""
from unittest.mock import Mock, patch

import pytest

from purvita.core.exceptions import (
    InsufficientBalanceError, ValidationError, WalletNotFoundError, WithdrawalLimitExceededError,
)
from purvita.domain.wallet import Wallet, WalletReason, WalletTransactionResult
from purvita.services.wallet_service import WalletService

USER = "user-1"


def result(previous=0, new=0, duplicate=False):
    return WalletTransactionResult(
        transaction_id="txn-1", previous_balance_cents=previous, new_balance_cents=new, duplicate=duplicate
    )


@pytest.fixture
def wallet_repo():
    repo = Mock()
    repo.get_wallet.return_value = Wallet(user_id=USER, balance_cents=5000)
    repo.add_transaction.return_value = result(5000, 4000)
    repo.find_by_reference.return_value = None
    repo.sum_withdrawals_since.return_value = 0
    return repo


@pytest.fixture
def earnings_repo():
    return Mock()


@pytest.fixture
def service(wallet_repo, earnings_repo):
    return WalletService(wallet_repo=wallet_repo, earnings_repo=earnings_repo)


class TestAddFunds:

    def test_credit_with_admin_meta(self, service, wallet_repo):
        service.add_funds(USER, 2500, WalletReason.ADMIN_ADJUSTMENT, admin_id="admin-1", note="bonus")

        user_id, delta, reason = wallet_repo.add_transaction.call_args.args
        meta = wallet_repo.add_transaction.call_args.kwargs["meta"]
        assert (user_id, delta, reason) == (USER, 2500, "admin_adjustment")
        assert meta["admin_id"] == "admin-1"
        assert meta["note"] == "bonus"
        assert "timestamp" in meta

    def test_admin_adjustment_may_debit(self, service, wallet_repo):
        service.add_funds(USER, -500, WalletReason.ADMIN_ADJUSTMENT)

        assert wallet_repo.add_transaction.call_args.args[1] == -500

    def test_zero_adjustment_rejected(self, service):
        with pytest.raises(ValidationError):
            service.add_funds(USER, 0, WalletReason.ADMIN_ADJUSTMENT)

    @pytest.mark.parametrize("amount", [0, -100])
    def test_other_reasons_need_positive_amount(self, service, amount):
        with pytest.raises(ValidationError):
            service.add_funds(USER, amount, WalletReason.RECHARGE)

    def test_accepts_reason_string(self, service, wallet_repo):
        service.add_funds(USER, 100, "sale_commission")

        assert wallet_repo.add_transaction.call_args.args[2] == "sale_commission"


class TestSpendFunds:

    def test_debits_existing_wallet(self, service, wallet_repo):
        service.spend_funds(USER, 1000, meta={"order": "cart"}, external_reference="wallet_abc")

        call = wallet_repo.add_transaction.call_args
        assert call.args[:3] == (USER, -1000, "purchase")
        assert call.kwargs["external_reference"] == "wallet_abc"
        assert call.kwargs["require_existing"] is True

    def test_insufficient_balance(self, service, wallet_repo):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            service.spend_funds(USER, 6000)

        assert exc_info.value.details == {"user_id": USER, "balance_cents": 5000, "requested_cents": 6000}
        wallet_repo.add_transaction.assert_not_called()

    def test_missing_wallet(self, service, wallet_repo):
        wallet_repo.get_wallet.return_value = None

        with pytest.raises(InsufficientBalanceError):
            service.spend_funds(USER, 1)


class TestRecordRecharge:

    def test_first_delivery_credits(self, service, wallet_repo):
        wallet_repo.add_transaction.return_value = result(0, 2500)

        recharge = service.record_recharge(USER, 2500, "stripe", "pi_1")

        assert recharge.already_processed is False
        assert recharge.new_balance_cents == 2500
        assert wallet_repo.add_transaction.call_args.kwargs["external_reference"] == "pi_1"

    def test_known_reference_is_skipped(self, service, wallet_repo):
        wallet_repo.find_by_reference.return_value = Mock()

        assert service.record_recharge(USER, 2500, "stripe", "pi_1").already_processed is True
        wallet_repo.add_transaction.assert_not_called()

    def test_concurrent_duplicate(self, service, wallet_repo):
        wallet_repo.add_transaction.return_value = result(2500, 2500, duplicate=True)

        assert service.record_recharge(USER, 2500, "stripe", "pi_1").already_processed is True

    def test_non_positive_amount_is_ignored(self, service, wallet_repo):
        assert service.record_recharge(USER, 0, "stripe", "pi_1").already_processed is True
        wallet_repo.add_transaction.assert_not_called()

    def test_missing_reference(self, service):
        with pytest.raises(ValidationError):
            service.record_recharge(USER, 100, "stripe", "")


class TestWithdrawals:

    def test_stats(self, service, wallet_repo):
        wallet_repo.sum_withdrawals_since.return_value = 30000

        stats = service.get_withdrawal_stats(USER, daily_limit_cents=50000)

        assert stats.total_withdrawn_24h_cents == 30000
        assert stats.remaining_limit_cents == 20000
        assert stats.current_balance_cents == 5000
        assert stats.limit_exceeded is False

    def test_stats_limit_reached(self, service, wallet_repo):
        wallet_repo.sum_withdrawals_since.return_value = 60000

        stats = service.get_withdrawal_stats(USER, daily_limit_cents=50000)

        assert stats.remaining_limit_cents == 0
        assert stats.limit_exceeded is True

    def test_withdrawal_over_limit(self, service, wallet_repo, monkeypatch, mock_transaction):
        from purvita.core.config import settings
        monkeypatch.setattr(settings, "WITHDRAWAL_DAILY_LIMIT_CENTS", 1000)
        conn, transaction_cls = mock_transaction

        with patch('purvita.services.wallet_service.transaction', transaction_cls):
            with pytest.raises(WithdrawalLimitExceededError):
                service.request_withdrawal(USER, 1500)

        wallet_repo.add_transaction.assert_not_called()
        conn.rollback.assert_called_once()

    def test_withdrawal(self, service, wallet_repo, monkeypatch, mock_transaction):
        from purvita.core.config import settings
        monkeypatch.setattr(settings, "WITHDRAWAL_DAILY_LIMIT_CENTS", 100000)
        conn, transaction_cls = mock_transaction

        with patch('purvita.services.wallet_service.transaction', transaction_cls):
            service.request_withdrawal(USER, 1500, payout_method="bank")

        call = wallet_repo.add_transaction.call_args
        assert call.args[:3] == (USER, -1500, "withdrawal")
        assert call.kwargs["meta"]["payout_method"] == "bank"
        assert call.kwargs["conn"] is conn
        conn.commit.assert_called_once()

    def test_limit_is_checked_under_the_wallet_lock(self, service, wallet_repo, monkeypatch, mock_transaction):
        """Test that the 24h total is read after locking, on the same connection as the debit"""
        # Arrange
        from purvita.core.config import settings
        monkeypatch.setattr(settings, "WITHDRAWAL_DAILY_LIMIT_CENTS", 50_000_000)
        conn, transaction_cls = mock_transaction
        calls = Mock()
        calls.attach_mock(wallet_repo.lock_wallet, "lock_wallet")
        calls.attach_mock(wallet_repo.sum_withdrawals_since, "sum_withdrawals_since")
        calls.attach_mock(wallet_repo.add_transaction, "add_transaction")
        wallet_repo.lock_wallet.return_value = 90_000_000
        wallet_repo.sum_withdrawals_since.return_value = 30_000_000

        # Act
        with patch('purvita.services.wallet_service.transaction', transaction_cls):
            with pytest.raises(WithdrawalLimitExceededError) as exc_info:
                service.request_withdrawal(USER, 30_000_000)

        # Assert
        assert [name for name, _, _ in calls.mock_calls] == ["lock_wallet", "sum_withdrawals_since"]
        assert wallet_repo.lock_wallet.call_args.kwargs["conn"] is conn
        assert wallet_repo.sum_withdrawals_since.call_args.kwargs["conn"] is conn
        assert exc_info.value.status_code == 400
        wallet_repo.add_transaction.assert_not_called()

    def test_withdrawal_without_wallet(self, service, wallet_repo, mock_transaction):
        _, transaction_cls = mock_transaction
        wallet_repo.lock_wallet.return_value = None

        with patch('purvita.services.wallet_service.transaction', transaction_cls):
            with pytest.raises(WalletNotFoundError):
                service.request_withdrawal(USER, 100)

        wallet_repo.sum_withdrawals_since.assert_not_called()

class TestTransferNetworkEarnings:

    def test_transfer_shares_one_transaction(self, service, wallet_repo, earnings_repo, mock_transaction):
        # Arrange
        conn, transaction_cls = mock_transaction
        earnings_repo.decrement_available.return_value = [("c1", 300), ("c2", 200)]
        wallet_repo.add_transaction.return_value = result(0, 500)

        # Act
        with patch('purvita.services.wallet_service.transaction', transaction_cls):
            transfer = service.transfer_network_earnings(USER, 500)

        # Assert
        assert transfer.new_balance_cents == 500
        earnings_repo.decrement_available.assert_called_once_with(USER, 500, conn=conn)
        call = wallet_repo.add_transaction.call_args
        assert call.args[:3] == (USER, 500, "network_earnings_transfer")
        assert call.kwargs["meta"]["commission_ids"] == ["c1", "c2"]
        assert call.kwargs["conn"] is conn
        conn.commit.assert_called_once()

    def test_insufficient_earnings_rolls_back(self, service, wallet_repo, earnings_repo, mock_transaction):
        conn, transaction_cls = mock_transaction
        earnings_repo.decrement_available.side_effect = InsufficientBalanceError(USER, 100, 500)

        with patch('purvita.services.wallet_service.transaction', transaction_cls):
            with pytest.raises(InsufficientBalanceError):
                service.transfer_network_earnings(USER, 500)

        wallet_repo.add_transaction.assert_not_called()
        conn.rollback.assert_called_once()

    def test_non_positive_amount(self, service):
        with pytest.raises(ValidationError):
            service.transfer_network_earnings(USER, 0)
