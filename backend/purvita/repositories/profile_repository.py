"""
Profile Repository - Data Access Layer for profiles and the referral tree
"""
from typing import Any, Dict, List, Optional

from purvita.domain.network import Profile
from purvita.repositories.base import BaseRepository

PROFILE_COLUMNS = """
    id, email, name, phone, address, city, country,
    referral_code, referred_by, sponsor_id, created_at
"""

UPDATABLE_FIELDS = ('name', 'phone', 'address', 'city', 'country')


class ProfileRepository(BaseRepository):
    """
    Repository for Profile data access

    Profiles carry the sponsor links (referred_by, legacy sponsor_id)
    that make up the referral tree.
    """

    @staticmethod
    def _map_row_to_profile(row: dict) -> Profile:
        return Profile(
            id=str(row['id']),
            email=row.get('email'),
            name=row.get('name'),
            phone=row.get('phone'),
            address=row.get('address'),
            city=row.get('city'),
            country=row.get('country'),
            referral_code=row.get('referral_code'),
            referred_by=str(row['referred_by']) if row.get('referred_by') else None,
            sponsor_id=str(row['sponsor_id']) if row.get('sponsor_id') else None,
            created_at=row.get('created_at')
        )

    def find_by_id(self, user_id: str, conn=None) -> Optional[Profile]:
        with self._cursor(conn) as cursor:
            cursor.execute(f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return self._map_row_to_profile(row) if row else None

    def find_by_referral_code(self, referral_code: str) -> Optional[Profile]:
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT {PROFILE_COLUMNS} FROM profiles WHERE referral_code = %s",
                (referral_code,)
            )
            row = cursor.fetchone()
            return self._map_row_to_profile(row) if row else None

    def find_sponsor_id(self, user_id: str, conn=None) -> Optional[str]:
        """
        Sponsor of a user: referred_by, falling back to sponsor_id

        Returns:
            Sponsor user ID, or None for a root of the tree or an unknown user
        """
        with self._cursor(conn) as cursor:
            cursor.execute(
                "SELECT referred_by, sponsor_id FROM profiles WHERE id = %s",
                (user_id,)
            )
            row = cursor.fetchone()
            if not row:
                return None
            sponsor = row.get('referred_by') or row.get('sponsor_id')
            return str(sponsor) if sponsor else None

    def count_direct_referrals(self, user_id: str) -> int:
        with self._cursor() as cursor:
            cursor.execute("""
                SELECT COUNT(*) as total
                FROM profiles
                WHERE referred_by = %s OR (referred_by IS NULL AND sponsor_id = %s)
            """, (user_id, user_id))
            return cursor.fetchone()['total']

    def set_sponsor(self, user_id: str, sponsor_id: str, conn=None) -> bool:
        """Link a user to a sponsor; only succeeds while the user has none"""
        with self._cursor(conn) as cursor:
            cursor.execute("""
                UPDATE profiles
                SET referred_by = %s, sponsor_id = %s
                WHERE id = %s AND referred_by IS NULL AND sponsor_id IS NULL
            """, (sponsor_id, sponsor_id, user_id))
            return cursor.rowcount > 0

    def update(self, user_id: str, fields: Dict[str, Any]) -> Optional[Profile]:
        """
        Update contact fields of a profile

        Only name, phone, address, city and country can change here.
        """
        updates = {key: value for key, value in fields.items() if key in UPDATABLE_FIELDS}
        if not updates:
            return self.find_by_id(user_id)

        set_clause = ", ".join(f"{key} = %s" for key in updates)
        params: List[Any] = list(updates.values()) + [user_id]

        with self._cursor() as cursor:
            cursor.execute(f"""
                UPDATE profiles
                SET {set_clause}
                WHERE id = %s
                RETURNING {PROFILE_COLUMNS}
            """, params)
            row = cursor.fetchone()
            return self._map_row_to_profile(row) if row else None

    def list_sponsor_links(self) -> Dict[str, str]:
        """Every user that has a sponsor, as {user_id: sponsor_id}"""
        with self._cursor() as cursor:
            cursor.execute("""
                SELECT id, COALESCE(referred_by, sponsor_id) as sponsor
                FROM profiles
                WHERE referred_by IS NOT NULL OR sponsor_id IS NOT NULL
            """)
            return {str(row['id']): str(row['sponsor']) for row in cursor.fetchall()}
