"""
Phase Repository - user phases and the phase level catalog
"""
from typing import List, Optional

from purvita.domain.network import PhaseLevel, PhaseLevelCreate, PhaseLevelUpdate
from purvita.repositories.base import BaseRepository

PHASE_LEVEL_COLUMNS = """
    id, level, name, name_en, name_es,
    commission_rate, subscription_discount_rate, affiliate_sponsor_commission_rate,
    credit_cents, free_product_value_cents, is_active, display_order,
    created_at, updated_at
"""


class PhaseRepository(BaseRepository):
    """
    Repository for phases (a user's MLM rank) and phase_levels (rank tiers)
    """

    @staticmethod
    def _map_row_to_level(row: dict) -> PhaseLevel:
        return PhaseLevel(
            id=str(row['id']),
            level=row['level'],
            name=row['name'],
            name_en=row.get('name_en'),
            name_es=row.get('name_es'),
            commission_rate=row.get('commission_rate') or 0,
            subscription_discount_rate=row.get('subscription_discount_rate') or 0,
            affiliate_sponsor_commission_rate=row.get('affiliate_sponsor_commission_rate') or 0,
            credit_cents=row.get('credit_cents') or 0,
            free_product_value_cents=row.get('free_product_value_cents'),
            is_active=row.get('is_active', True),
            display_order=row.get('display_order') or 0,
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def get_user_phase(self, user_id: str, conn=None) -> int:
        """Current phase of a user; 0 when no phase row exists"""
        with self._cursor(conn) as cursor:
            cursor.execute("SELECT phase FROM phases WHERE user_id = %s", (user_id,))
            row = cursor.fetchone()
            if not row or row['phase'] is None:
                return 0
            return int(row['phase'])

    def list_levels(self, active_only: bool = False) -> List[PhaseLevel]:
        with self._cursor() as cursor:
            where_clause = "WHERE is_active = TRUE" if active_only else ""
            cursor.execute(f"""
                SELECT {PHASE_LEVEL_COLUMNS}
                FROM phase_levels
                {where_clause}
                ORDER BY display_order, level
            """)
            return [self._map_row_to_level(row) for row in cursor.fetchall()]

    def find_level_by_id(self, level_id: str) -> Optional[PhaseLevel]:
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT {PHASE_LEVEL_COLUMNS} FROM phase_levels WHERE id = %s",
                (level_id,)
            )
            row = cursor.fetchone()
            return self._map_row_to_level(row) if row else None

    def create_level(self, data: PhaseLevelCreate) -> PhaseLevel:
        values = data.model_dump()
        columns = list(values.keys())

        with self._cursor() as cursor:
            cursor.execute(f"""
                INSERT INTO phase_levels ({", ".join(columns)})
                VALUES ({", ".join(["%s"] * len(columns))})
                RETURNING {PHASE_LEVEL_COLUMNS}
            """, [values[column] for column in columns])
            return self._map_row_to_level(cursor.fetchone())

    def update_level(self, level_id: str, data: PhaseLevelUpdate) -> Optional[PhaseLevel]:
        values = data.model_dump(exclude_unset=True)
        if not values:
            return self.find_level_by_id(level_id)

        set_clause = ", ".join(f"{column} = %s" for column in values)

        with self._cursor() as cursor:
            cursor.execute(f"""
                UPDATE phase_levels
                SET {set_clause}, updated_at = NOW()
                WHERE id = %s
                RETURNING {PHASE_LEVEL_COLUMNS}
            """, list(values.values()) + [level_id])
            row = cursor.fetchone()
            return self._map_row_to_level(row) if row else None

    def delete_level(self, level_id: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM phase_levels WHERE id = %s", (level_id,))
            return cursor.rowcount > 0
