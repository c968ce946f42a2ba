"""
App Settings Repository - the single 'global' settings row
"""
import json
from typing import Optional

from purvita.domain.network import AppSettings, AppSettingsUpdate
from purvita.repositories.base import BaseRepository

SETTINGS_COLUMNS = """
    id, currency, currencies, payout_frequency, max_members_per_level,
    auto_advance_enabled, ecommerce_commission_rate, team_levels_visible,
    direct_sponsor_commission_rate, network_commission_rate,
    created_at, updated_at
"""

GLOBAL_SETTINGS_ID = 'global'


class AppSettingsRepository(BaseRepository):

    @staticmethod
    def _map_row_to_settings(row: dict) -> AppSettings:
        defaults = AppSettingsUpdate()
        return AppSettings(
            id=row.get('id') or GLOBAL_SETTINGS_ID,
            currency=row.get('currency') or defaults.currency,
            currencies=row.get('currencies') or [],
            payout_frequency=row.get('payout_frequency') or defaults.payout_frequency,
            max_members_per_level=row.get('max_members_per_level') or [],
            auto_advance_enabled=bool(row.get('auto_advance_enabled')),
            ecommerce_commission_rate=row.get('ecommerce_commission_rate', defaults.ecommerce_commission_rate),
            team_levels_visible=row.get('team_levels_visible') or defaults.team_levels_visible,
            direct_sponsor_commission_rate=row.get('direct_sponsor_commission_rate') or 0,
            network_commission_rate=row.get('network_commission_rate') or 0,
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def get(self) -> Optional[AppSettings]:
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT {SETTINGS_COLUMNS} FROM app_settings WHERE id = %s",
                (GLOBAL_SETTINGS_ID,)
            )
            row = cursor.fetchone()
            return self._map_row_to_settings(row) if row else None

    def upsert(self, data: AppSettingsUpdate) -> AppSettings:
        values = data.model_dump(mode="json")
        values['currencies'] = json.dumps(values['currencies'])
        values['max_members_per_level'] = json.dumps(values['max_members_per_level'])
        columns = list(values.keys())

        placeholders = ", ".join(
            "%s::jsonb" if column in ('currencies', 'max_members_per_level') else "%s"
            for column in columns
        )
        update_clause = ", ".join(f"{column} = EXCLUDED.{column}" for column in columns)

        with self._cursor() as cursor:
            cursor.execute(f"""
                INSERT INTO app_settings (id, {", ".join(columns)})
                VALUES (%s, {placeholders})
                ON CONFLICT (id) DO UPDATE
                SET {update_clause}, updated_at = NOW()
                RETURNING {SETTINGS_COLUMNS}
            """, [GLOBAL_SETTINGS_ID] + [values[column] for column in columns])
            return self._map_row_to_settings(cursor.fetchone())
