"""
Shared connection handling for repositories

Every repository method accepts an optional ``conn``. When the caller passes
one, the method runs inside the caller's transaction and never commits.
Otherwise it opens its own connection, commits on success and closes it.
"""
from contextlib import contextmanager

from purvita.core.database import get_db_connection_dict


class BaseRepository:

    @staticmethod
    @contextmanager
    def _cursor(conn=None):
        should_close = conn is None
        if should_close:
            conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            yield cursor
            if should_close:
                conn.commit()
        except Exception:
            if should_close:
                conn.rollback()
            raise
        finally:
            cursor.close()
            if should_close:
                conn.close()
