"""
Subscription Repository
"""
from typing import Optional

from purvita.domain.network import Subscription
from purvita.repositories.base import BaseRepository


class SubscriptionRepository(BaseRepository):

    def find_latest(self, user_id: str, conn=None) -> Optional[Subscription]:
        """Newest subscription of a user (by created_at), or None"""
        with self._cursor(conn) as cursor:
            cursor.execute("""
                SELECT id, user_id, status, waitlisted, created_at
                FROM subscriptions
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT 1
            """, (user_id,))
            row = cursor.fetchone()
            if not row:
                return None

            return Subscription(
                id=str(row['id']),
                user_id=str(row['user_id']),
                status=row['status'],
                waitlisted=bool(row.get('waitlisted')),
                created_at=row.get('created_at')
            )
