"""
Audit Log Repository
"""
import json
from typing import Any, Dict, Optional

from purvita.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository):

    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
        actor_id: Optional[str] = None,
        conn=None
    ) -> str:
        """Record an audit event; returns the new audit log id"""
        with self._cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO audit_logs (action, entity_type, entity_id, actor_id, metadata)
                VALUES (%s, %s, %s, %s, %s::jsonb)
                RETURNING id
            """, (action, entity_type, entity_id, actor_id, json.dumps(metadata or {}, default=str)))
            return str(cursor.fetchone()['id'])
