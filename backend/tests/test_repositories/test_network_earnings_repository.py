"""
Tests for NetworkEarningsRepository
"""
import pytest

from purvita.core.exceptions import InsufficientBalanceError, ValidationError
from purvita.domain.commission import CommissionEntry, CommissionType
from purvita.repositories.network_earnings_repository import NetworkEarningsRepository

USER_ID = "33333333-3333-3333-3333-333333333333"


class TestDecrementAvailable:
    """Test suite for FIFO consumption of network earnings"""

    def test_consumes_oldest_rows_first(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = [
            {"id": "c1", "available_cents": 300},
            {"id": "c2", "available_cents": 500},
            {"id": "c3", "available_cents": 1000},
        ]

        # Act
        deductions = NetworkEarningsRepository().decrement_available(USER_ID, 600)

        # Assert
        assert deductions == [("c1", 300), ("c2", 300)]
        select_query = mock_cursor.execute.call_args_list[0].args[0]
        assert "FOR UPDATE" in select_query
        assert "ORDER BY created_at ASC" in select_query
        # one SELECT plus two UPDATEs
        assert mock_cursor.execute.call_count == 3

    def test_exact_total(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = [{"id": "c1", "available_cents": 800}]

        # Act
        deductions = NetworkEarningsRepository().decrement_available(USER_ID, 800)

        # Assert
        assert deductions == [("c1", 800)]

    def test_no_earnings(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = []

        # Act & Assert
        with pytest.raises(InsufficientBalanceError) as exc_info:
            NetworkEarningsRepository().decrement_available(USER_ID, 100)

        assert exc_info.value.message == "No network earnings available"

    def test_insufficient_earnings_updates_nothing(self, mock_db):
        # Arrange
        mock_conn, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = [{"id": "c1", "available_cents": 50}]

        # Act & Assert
        with pytest.raises(InsufficientBalanceError) as exc_info:
            NetworkEarningsRepository().decrement_available(USER_ID, 100)

        assert exc_info.value.message == "Insufficient network earnings"
        assert mock_cursor.execute.call_count == 1
        mock_conn.rollback.assert_called_once()

    @pytest.mark.parametrize("amount", [0, -10])
    def test_non_positive_amount(self, mock_db, amount):
        with pytest.raises(ValidationError):
            NetworkEarningsRepository().decrement_available(USER_ID, amount)


class TestNetworkEarningsRepository:
    """Test suite for commission rows"""

    def test_insert_commission_returns_id(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = {"id": "nc-1"}
        entry = CommissionEntry(user_id=USER_ID, member_id="buyer", level=1, amount_cents=800)

        # Act
        commission_id = NetworkEarningsRepository().insert_commission("order-1", entry, "USD")

        # Assert
        assert commission_id == "nc-1"
        query, params = mock_cursor.execute.call_args.args
        assert "ON CONFLICT (order_id, user_id, commission_type) DO NOTHING" in query
        # amount and available start equal
        assert params[5] == params[6] == 800
        assert params[3] == CommissionType.RETAIL.value

    def test_insert_commission_conflict_returns_none(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchone.return_value = None
        entry = CommissionEntry(user_id=USER_ID, member_id="buyer", level=1, amount_cents=800)

        # Act & Assert
        assert NetworkEarningsRepository().insert_commission("order-1", entry, "USD") is None

    def test_fetch_available_summary_groups_by_member(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = [
            {"member_id": "m1", "available_cents": 200, "currency": "EUR", "member_name": "A", "member_email": "a@x"},
            {"member_id": "m2", "available_cents": 900, "currency": "EUR", "member_name": "B", "member_email": "b@x"},
            {"member_id": "m1", "available_cents": 100, "currency": "EUR", "member_name": "A", "member_email": "a@x"},
        ]

        # Act
        summary = NetworkEarningsRepository().fetch_available_summary(USER_ID)

        # Assert
        assert summary.total_available_cents == 1200
        assert summary.currency == "EUR"
        assert [(m.member_id, m.total_cents) for m in summary.members] == [("m2", 900), ("m1", 300)]

    def test_fetch_available_summary_empty_uses_default_currency(self, mock_db):
        # Arrange
        _, mock_cursor = mock_db
        mock_cursor.fetchall.return_value = []

        # Act
        summary = NetworkEarningsRepository().fetch_available_summary(USER_ID, default_currency="PEN")

        # Assert
        assert summary.total_available_cents == 0
        assert summary.currency == "PEN"
        assert summary.members == []
