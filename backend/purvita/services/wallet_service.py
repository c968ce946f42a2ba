"""
Wallet Service
Business rules on top of the wallet ledger

Every operation ends in WalletRepository.add_transaction, which locks the
wallet row and keeps the balance non-negative.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from purvita.core.config import settings
from purvita.core.database import transaction
from purvita.core.exceptions import (
    InsufficientBalanceError, ValidationError, WalletNotFoundError, WithdrawalLimitExceededError,
)
from purvita.domain.wallet import (
    RechargeResult, WalletReason, WalletTransaction, WalletTransactionResult, WithdrawalStats,
)
from purvita.repositories import NetworkEarningsRepository, WalletRepository

logger = logging.getLogger(__name__)


class WalletService:
    """
    Service for wallet balance operations

    Handles:
    - Balance and ledger reads
    - Credits (recharges, commissions, admin adjustments)
    - Spends, refunds and withdrawals
    - Moving network earnings into the wallet
    """

    def __init__(
        self,
        wallet_repo: Optional[WalletRepository] = None,
        earnings_repo: Optional[NetworkEarningsRepository] = None
    ):
        self.wallet_repo = wallet_repo or WalletRepository()
        self.earnings_repo = earnings_repo or NetworkEarningsRepository()

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    def get_balance(self, user_id: str) -> int:
        wallet = self.wallet_repo.get_wallet(user_id)
        return wallet.balance_cents if wallet else 0

    def list_transactions(self, user_id: str, limit: int = 50) -> List[WalletTransaction]:
        return self.wallet_repo.list_transactions(user_id, limit=limit)

    def add_funds(
        self,
        user_id: str,
        amount_cents: int,
        reason: WalletReason,
        admin_id: Optional[str] = None,
        note: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        external_reference: Optional[str] = None,
        conn=None
    ) -> WalletTransactionResult:
        """
        Credit a wallet

        Admin adjustments may be negative (a debit) but never zero; every
        other reason needs a positive amount.
        """
        reason = WalletReason(reason)
        if reason == WalletReason.ADMIN_ADJUSTMENT:
            if amount_cents == 0:
                raise ValidationError("Adjustment amount cannot be zero", {"amount_cents": amount_cents})
        elif amount_cents <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount_cents": amount_cents})

        transaction_meta: Dict[str, Any] = {"timestamp": self._timestamp()}
        if admin_id:
            transaction_meta["admin_id"] = admin_id
        if note:
            transaction_meta["note"] = note
        if meta:
            transaction_meta.update(meta)

        result = self.wallet_repo.add_transaction(
            user_id,
            amount_cents,
            reason.value,
            meta=transaction_meta,
            external_reference=external_reference,
            conn=conn
        )
        logger.info(
            f"Wallet {reason.value} of {amount_cents} cents for user {user_id} "
            f"(balance {result.previous_balance_cents} -> {result.new_balance_cents})"
        )
        return result

    def spend_funds(
        self,
        user_id: str,
        amount_cents: int,
        meta: Optional[Dict[str, Any]] = None,
        external_reference: Optional[str] = None
    ) -> WalletTransactionResult:
        if amount_cents <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount_cents": amount_cents})

        wallet = self.wallet_repo.get_wallet(user_id)
        if wallet is None or wallet.balance_cents < amount_cents:
            balance = wallet.balance_cents if wallet else 0
            logger.warning(
                f"Wallet spend rejected for user {user_id}: balance={balance}, requested={amount_cents}"
            )
            raise InsufficientBalanceError(user_id, balance, amount_cents)

        return self.wallet_repo.add_transaction(
            user_id,
            -amount_cents,
            WalletReason.PURCHASE.value,
            meta={"timestamp": self._timestamp(), **(meta or {})},
            external_reference=external_reference,
            require_existing=True
        )

    def refund(
        self,
        user_id: str,
        amount_cents: int,
        meta: Optional[Dict[str, Any]] = None,
        external_reference: Optional[str] = None
    ) -> WalletTransactionResult:
        return self.add_funds(
            user_id,
            amount_cents,
            WalletReason.REFUND,
            meta=meta,
            external_reference=external_reference
        )

    def record_recharge(
        self,
        user_id: str,
        amount_cents: int,
        gateway: str,
        gateway_ref: str,
        currency: str = "USD"
    ) -> RechargeResult:
        """
        Credit a confirmed gateway recharge exactly once

        Returns:
            RechargeResult with already_processed=True when the reference
            was seen before or the amount is not positive
        """
        if not gateway_ref:
            raise ValidationError("Missing gateway reference")

        if amount_cents <= 0:
            logger.warning(f"Ignoring non-positive recharge {gateway_ref} for user {user_id}: {amount_cents}")
            return RechargeResult(already_processed=True)

        if self.wallet_repo.find_by_reference(user_id, gateway_ref):
            return RechargeResult(already_processed=True)

        result = self.add_funds(
            user_id,
            amount_cents,
            WalletReason.RECHARGE,
            meta={"gateway": gateway, "gateway_ref": gateway_ref, "currency": currency},
            external_reference=gateway_ref
        )
        return RechargeResult(
            already_processed=result.duplicate,
            transaction_id=result.transaction_id,
            new_balance_cents=result.new_balance_cents
        )

    def get_withdrawal_stats(self, user_id: str, daily_limit_cents: Optional[int] = None) -> WithdrawalStats:
        if daily_limit_cents is None:
            daily_limit_cents = settings.WITHDRAWAL_DAILY_LIMIT_CENTS

        since = datetime.now(timezone.utc) - timedelta(hours=24)
        withdrawn = self.wallet_repo.sum_withdrawals_since(user_id, since)
        remaining = max(daily_limit_cents - withdrawn, 0)

        return WithdrawalStats(
            total_withdrawn_24h_cents=withdrawn,
            daily_limit_cents=daily_limit_cents,
            remaining_limit_cents=remaining,
            current_balance_cents=self.get_balance(user_id),
            limit_exceeded=withdrawn >= daily_limit_cents
        )

    def request_withdrawal(
        self,
        user_id: str,
        amount_cents: int,
        payout_method: Optional[str] = None
    ) -> WalletTransactionResult:
        """
        Debit a payout within the rolling 24h limit

        The limit is checked while the wallet row is locked, so concurrent
        requests are serialized and cannot jointly exceed it.
        """
        if amount_cents <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount_cents": amount_cents})

        daily_limit_cents = settings.WITHDRAWAL_DAILY_LIMIT_CENTS
        meta: Dict[str, Any] = {"timestamp": self._timestamp()}
        if payout_method:
            meta["payout_method"] = payout_method

        with transaction() as conn:
            if self.wallet_repo.lock_wallet(user_id, conn=conn) is None:
                raise WalletNotFoundError(user_id)

            since = datetime.now(timezone.utc) - timedelta(hours=24)
            withdrawn = self.wallet_repo.sum_withdrawals_since(user_id, since, conn=conn)
            remaining = max(daily_limit_cents - withdrawn, 0)
            if amount_cents > remaining:
                logger.warning(
                    f"Withdrawal of {amount_cents} cents exceeds remaining daily limit "
                    f"{remaining} for user {user_id}"
                )
                raise WithdrawalLimitExceededError(user_id, remaining, amount_cents)

            return self.wallet_repo.add_transaction(
                user_id,
                -amount_cents,
                WalletReason.WITHDRAWAL.value,
                meta=meta,
                require_existing=True,
                conn=conn
            )

    def transfer_network_earnings(self, user_id: str, amount_cents: int) -> WalletTransactionResult:
        """
        Move available network earnings into the wallet

        The FIFO decrement and the wallet credit share one transaction.
        """
        if amount_cents <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount_cents": amount_cents})

        with transaction() as conn:
            deductions = self.earnings_repo.decrement_available(user_id, amount_cents, conn=conn)
            result = self.add_funds(
                user_id,
                amount_cents,
                WalletReason.NETWORK_EARNINGS_TRANSFER,
                meta={"commission_ids": [commission_id for commission_id, _ in deductions]},
                conn=conn
            )

        logger.info(f"Transferred {amount_cents} cents of network earnings to wallet for user {user_id}")
        return result
