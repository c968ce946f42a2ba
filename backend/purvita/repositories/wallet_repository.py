"""
Wallet Repository - Data Access Layer for the wallet ledger

All balance changes go through ``add_transaction`` so that the wallet row
is locked, the balance never goes below zero and every change leaves a
wallet_txns record.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from purvita.core.exceptions import InsufficientBalanceError, WalletNotFoundError
from purvita.domain.wallet import Wallet, WalletTransaction, WalletTransactionResult
from purvita.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class WalletRepository(BaseRepository):

    @staticmethod
    def _map_row_to_transaction(row: dict) -> WalletTransaction:
        return WalletTransaction(
            id=str(row['id']),
            user_id=str(row['user_id']),
            delta_cents=row['delta_cents'],
            reason=row['reason'],
            meta=row.get('meta') or {},
            external_reference=row.get('external_reference'),
            created_at=row.get('created_at')
        )

    def get_wallet(self, user_id: str, conn=None) -> Optional[Wallet]:
        with self._cursor(conn) as cursor:
            cursor.execute(
                "SELECT user_id, balance_cents, updated_at FROM wallets WHERE user_id = %s",
                (user_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None
            return Wallet(
                user_id=str(row['user_id']),
                balance_cents=row['balance_cents'],
                updated_at=row.get('updated_at')
            )

    def list_transactions(self, user_id: str, limit: int = 50) -> List[WalletTransaction]:
        with self._cursor() as cursor:
            cursor.execute("""
                SELECT id, user_id, delta_cents, reason, meta, external_reference, created_at
                FROM wallet_txns
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
            """, (user_id, limit))
            return [self._map_row_to_transaction(row) for row in cursor.fetchall()]

    def find_by_reference(self, user_id: str, external_reference: str, conn=None) -> Optional[WalletTransaction]:
        with self._cursor(conn) as cursor:
            cursor.execute("""
                SELECT id, user_id, delta_cents, reason, meta, external_reference, created_at
                FROM wallet_txns
                WHERE user_id = %s AND external_reference = %s
            """, (user_id, external_reference))
            row = cursor.fetchone()
            return self._map_row_to_transaction(row) if row else None

    def lock_wallet(self, user_id: str, conn) -> Optional[int]:
        """Lock the wallet row for the caller's transaction and return its balance"""
        with self._cursor(conn) as cursor:
            cursor.execute(
                "SELECT balance_cents FROM wallets WHERE user_id = %s FOR UPDATE",
                (user_id,)
            )
            row = cursor.fetchone()
            return row['balance_cents'] if row else None

    def sum_withdrawals_since(self, user_id: str, since: datetime, conn=None) -> int:
        """Total cents withdrawn since a point in time, as a positive number"""
        with self._cursor(conn) as cursor:
            cursor.execute("""
                SELECT COALESCE(SUM(-delta_cents), 0) as total
                FROM wallet_txns
                WHERE user_id = %s AND reason = 'withdrawal' AND created_at >= %s
            """, (user_id, since))
            return int(cursor.fetchone()['total'])

    def add_transaction(
        self,
        user_id: str,
        delta_cents: int,
        reason: str,
        meta: Optional[Dict[str, Any]] = None,
        external_reference: Optional[str] = None,
        require_existing: bool = False,
        conn=None
    ) -> WalletTransactionResult:
        """
        Apply a ledger transaction atomically

        Args:
            user_id: Wallet owner
            delta_cents: Signed amount (credit > 0, debit < 0)
            reason: Wallet reason (recharge, purchase, ...)
            meta: JSON metadata stored with the transaction
            external_reference: Idempotency key, unique per user
            require_existing: Raise instead of creating a missing wallet
            conn: Join the caller's transaction

        Returns:
            WalletTransactionResult; duplicate=True when external_reference
            was already recorded (nothing changes)

        Raises:
            WalletNotFoundError: require_existing and no wallet
            InsufficientBalanceError: the balance would go negative
        """
        with self._cursor(conn) as cursor:
            if not require_existing:
                cursor.execute("""
                    INSERT INTO wallets (user_id, balance_cents)
                    VALUES (%s, 0)
                    ON CONFLICT (user_id) DO NOTHING
                """, (user_id,))

            cursor.execute(
                "SELECT balance_cents FROM wallets WHERE user_id = %s FOR UPDATE",
                (user_id,)
            )
            wallet = cursor.fetchone()
            if not wallet:
                raise WalletNotFoundError(user_id)

            balance = wallet['balance_cents']

            if external_reference:
                cursor.execute("""
                    SELECT id FROM wallet_txns
                    WHERE user_id = %s AND external_reference = %s
                """, (user_id, external_reference))
                existing = cursor.fetchone()
                if existing:
                    logger.info(f"Wallet transaction {external_reference} already recorded for user {user_id}")
                    return WalletTransactionResult(
                        transaction_id=str(existing['id']),
                        previous_balance_cents=balance,
                        new_balance_cents=balance,
                        duplicate=True
                    )

            new_balance = balance + delta_cents
            if new_balance < 0:
                logger.warning(
                    f"Insufficient balance for user {user_id}: balance={balance}, delta={delta_cents}, reason={reason}"
                )
                raise InsufficientBalanceError(user_id, balance, -delta_cents)

            cursor.execute("""
                UPDATE wallets
                SET balance_cents = %s, updated_at = NOW()
                WHERE user_id = %s
            """, (new_balance, user_id))

            cursor.execute("""
                INSERT INTO wallet_txns (user_id, delta_cents, reason, meta, external_reference)
                VALUES (%s, %s, %s, %s::jsonb, %s)
                RETURNING id
            """, (user_id, delta_cents, reason, json.dumps(meta or {}, default=str), external_reference))
            transaction_id = str(cursor.fetchone()['id'])

            return WalletTransactionResult(
                transaction_id=transaction_id,
                previous_balance_cents=balance,
                new_balance_cents=new_balance
            )
