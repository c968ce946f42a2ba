"""
Network Earnings Repository - Data Access Layer for network_commissions

Commission rows double as the earner's network earnings balance: every row
keeps an ``available_cents`` amount that has not been moved to the wallet yet.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from purvita.core.exceptions import InsufficientBalanceError, ValidationError
from purvita.domain.commission import (
    CommissionEntry, MemberEarnings, NetworkCommission, NetworkEarningsSummary,
)
from purvita.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

COMMISSION_COLUMNS = """
    id, user_id, member_id, order_id, commission_type, level,
    amount_cents, available_cents, currency, metadata, created_at
"""


class NetworkEarningsRepository(BaseRepository):

    @staticmethod
    def _map_row_to_commission(row: dict) -> NetworkCommission:
        return NetworkCommission(
            id=str(row['id']),
            user_id=str(row['user_id']),
            member_id=str(row['member_id']),
            order_id=str(row['order_id']) if row.get('order_id') else None,
            commission_type=row['commission_type'],
            level=row['level'],
            amount_cents=row['amount_cents'],
            available_cents=row['available_cents'],
            currency=row['currency'],
            metadata=row.get('metadata') or {},
            created_at=row.get('created_at')
        )

    def insert_commission(
        self,
        order_id: Optional[str],
        entry: CommissionEntry,
        currency: str,
        metadata: Optional[Dict[str, Any]] = None,
        conn=None
    ) -> Optional[str]:
        """
        Insert one commission row with its full amount available

        Returns:
            New row id, or None when (order_id, user_id, commission_type)
            already exists
        """
        with self._cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO network_commissions (
                    user_id, member_id, order_id, commission_type, level,
                    amount_cents, available_cents, currency, metadata
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s::jsonb)
                ON CONFLICT (order_id, user_id, commission_type) DO NOTHING
                RETURNING id
            """, (
                entry.user_id, entry.member_id, order_id, entry.commission_type.value, entry.level,
                entry.amount_cents, entry.amount_cents, currency,
                json.dumps(metadata or {}, default=str)
            ))
            row = cursor.fetchone()
            return str(row['id']) if row else None

    def find_by_order(self, order_id: str, conn=None, for_update: bool = False) -> List[NetworkCommission]:
        with self._cursor(conn) as cursor:
            lock_clause = "FOR UPDATE" if for_update else ""
            cursor.execute(f"""
                SELECT {COMMISSION_COLUMNS}
                FROM network_commissions
                WHERE order_id = %s
                ORDER BY level
                {lock_clause}
            """, (order_id,))
            return [self._map_row_to_commission(row) for row in cursor.fetchall()]

    def delete_by_order(self, order_id: str, conn=None) -> int:
        with self._cursor(conn) as cursor:
            cursor.execute("DELETE FROM network_commissions WHERE order_id = %s", (order_id,))
            return cursor.rowcount

    def fetch_available_summary(self, user_id: str, default_currency: str = 'USD') -> NetworkEarningsSummary:
        """
        Available network earnings of a user, broken down by downline member

        Returns:
            NetworkEarningsSummary with members sorted by total, highest first
        """
        with self._cursor() as cursor:
            cursor.execute("""
                SELECT
                    nc.member_id, nc.available_cents, nc.currency,
                    p.name as member_name,
                    p.email as member_email
                FROM network_commissions nc
                LEFT JOIN profiles p ON p.id = nc.member_id
                WHERE nc.user_id = %s AND nc.available_cents > 0
                ORDER BY nc.created_at
            """, (user_id,))
            rows = cursor.fetchall()

        members: Dict[str, MemberEarnings] = {}
        total = 0
        for row in rows:
            member_id = str(row['member_id'])
            amount = row['available_cents'] or 0
            total += amount

            member = members.get(member_id)
            if member is None:
                member = MemberEarnings(
                    member_id=member_id,
                    member_name=row.get('member_name'),
                    member_email=row.get('member_email')
                )
                members[member_id] = member
            member.total_cents += amount

        currency = rows[0]['currency'] if rows and rows[0].get('currency') else default_currency

        return NetworkEarningsSummary(
            total_available_cents=total,
            currency=currency,
            members=sorted(members.values(), key=lambda m: m.total_cents, reverse=True)
        )

    def decrement_available(self, user_id: str, amount_cents: int, conn=None) -> List[Tuple[str, int]]:
        """
        Consume available earnings oldest first

        Rows are locked for the rest of the caller's transaction, so a
        concurrent transfer waits instead of spending the same cents.

        Returns:
            List of (commission id, deducted cents)

        Raises:
            ValidationError: amount is not positive
            InsufficientBalanceError: not enough available earnings
        """
        if amount_cents <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount_cents": amount_cents})

        with self._cursor(conn) as cursor:
            cursor.execute("""
                SELECT id, available_cents
                FROM network_commissions
                WHERE user_id = %s AND available_cents > 0
                ORDER BY created_at ASC, id ASC
                FOR UPDATE
            """, (user_id,))
            rows = cursor.fetchall()

            total_available = sum(row['available_cents'] for row in rows)
            if total_available <= 0:
                raise InsufficientBalanceError(
                    user_id, 0, amount_cents, message="No network earnings available"
                )
            if total_available < amount_cents:
                logger.warning(
                    f"Network earnings transfer of {amount_cents} exceeds available "
                    f"{total_available} for user {user_id}"
                )
                raise InsufficientBalanceError(
                    user_id, total_available, amount_cents, message="Insufficient network earnings"
                )

            remaining = amount_cents
            deductions = []
            for row in rows:
                if remaining <= 0:
                    break
                deduct = min(row['available_cents'], remaining)
                cursor.execute("""
                    UPDATE network_commissions
                    SET available_cents = available_cents - %s
                    WHERE id = %s
                """, (deduct, row['id']))
                deductions.append((str(row['id']), deduct))
                remaining -= deduct

            return deductions
