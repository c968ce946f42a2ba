"""
Advertising Script Repository
"""
from typing import List, Optional

from purvita.domain.advertising import AdvertisingScript, AdvertisingScriptCreate, AdvertisingScriptUpdate
from purvita.repositories.base import BaseRepository

SCRIPT_COLUMNS = "id, name, provider, position, script_content, is_active, created_at, updated_at"


class AdvertisingScriptRepository(BaseRepository):

    @staticmethod
    def _map_row_to_script(row: dict) -> AdvertisingScript:
        return AdvertisingScript(
            id=str(row['id']),
            name=row['name'],
            provider=row.get('provider'),
            position=row['position'],
            script_content=row['script_content'],
            is_active=row['is_active'],
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def list_all(self) -> List[AdvertisingScript]:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT {SCRIPT_COLUMNS} FROM advertising_scripts ORDER BY created_at DESC")
            return [self._map_row_to_script(row) for row in cursor.fetchall()]

    def list_active(self) -> List[AdvertisingScript]:
        with self._cursor() as cursor:
            cursor.execute(f"""
                SELECT {SCRIPT_COLUMNS}
                FROM advertising_scripts
                WHERE is_active = TRUE
                ORDER BY position, created_at
            """)
            return [self._map_row_to_script(row) for row in cursor.fetchall()]

    def find_by_id(self, script_id: str) -> Optional[AdvertisingScript]:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT {SCRIPT_COLUMNS} FROM advertising_scripts WHERE id = %s", (script_id,))
            row = cursor.fetchone()
            return self._map_row_to_script(row) if row else None

    def create(self, data: AdvertisingScriptCreate) -> AdvertisingScript:
        with self._cursor() as cursor:
            cursor.execute(f"""
                INSERT INTO advertising_scripts (name, provider, position, script_content, is_active)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {SCRIPT_COLUMNS}
            """, (data.name, data.provider, data.position, data.script_content, data.is_active))
            return self._map_row_to_script(cursor.fetchone())

    def update(self, script_id: str, data: AdvertisingScriptUpdate) -> Optional[AdvertisingScript]:
        values = data.model_dump(exclude_unset=True)
        if not values:
            return self.find_by_id(script_id)

        set_clause = ", ".join(f"{column} = %s" for column in values)
        with self._cursor() as cursor:
            cursor.execute(f"""
                UPDATE advertising_scripts
                SET {set_clause}, updated_at = NOW()
                WHERE id = %s
                RETURNING {SCRIPT_COLUMNS}
            """, list(values.values()) + [script_id])
            row = cursor.fetchone()
            return self._map_row_to_script(row) if row else None

    def delete(self, script_id: str) -> bool:
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM advertising_scripts WHERE id = %s", (script_id,))
            return cursor.rowcount > 0
