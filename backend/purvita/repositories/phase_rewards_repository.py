"""
Phase Rewards Repository
"""
from typing import Optional

from purvita.domain.rewards import PhaseReward
from purvita.repositories.base import BaseRepository


class PhaseRewardsRepository(BaseRepository):

    def find_active(self, user_id: str, conn=None, for_update: bool = False) -> Optional[PhaseReward]:
        """Latest reward of a user that has not expired"""
        with self._cursor(conn) as cursor:
            lock_clause = "FOR UPDATE" if for_update else ""
            cursor.execute(f"""
                SELECT id, user_id, phase, has_free_product, free_product_used,
                       credit_remaining_cents, expires_at
                FROM phase_rewards
                WHERE user_id = %s AND (expires_at IS NULL OR expires_at > NOW())
                ORDER BY created_at DESC
                LIMIT 1
                {lock_clause}
            """, (user_id,))
            row = cursor.fetchone()
            if not row:
                return None

            return PhaseReward(
                id=str(row['id']),
                user_id=str(row['user_id']),
                phase=row['phase'],
                has_free_product=bool(row.get('has_free_product')),
                free_product_used=bool(row.get('free_product_used')),
                credit_remaining_cents=row.get('credit_remaining_cents') or 0,
                expires_at=row.get('expires_at')
            )

    def mark_free_product_used(self, reward_id: str, conn=None) -> bool:
        with self._cursor(conn) as cursor:
            cursor.execute("""
                UPDATE phase_rewards
                SET free_product_used = TRUE
                WHERE id = %s AND free_product_used = FALSE
            """, (reward_id,))
            return cursor.rowcount > 0

    def decrement_credit(self, reward_id: str, amount_cents: int, conn=None) -> Optional[int]:
        """Spend store credit; returns the remaining credit or None if not enough"""
        with self._cursor(conn) as cursor:
            cursor.execute("""
                UPDATE phase_rewards
                SET credit_remaining_cents = credit_remaining_cents - %s
                WHERE id = %s AND credit_remaining_cents >= %s
                RETURNING credit_remaining_cents
            """, (amount_cents, reward_id, amount_cents))
            row = cursor.fetchone()
            return row['credit_remaining_cents'] if row else None
