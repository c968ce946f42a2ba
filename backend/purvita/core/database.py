"""
Conexión a base de datos PostgreSQL (Supabase)

Este módulo centraliza TODAS las formas de acceso a la base de datos:
- SQLAlchemy (definición del esquema y creación de tablas)
- psycopg2 directo (para queries SQL raw en repositorios)
- transaction() para operaciones atómicas que cruzan repositorios
"""
import logging
import time
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from .config import settings
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# ============================================================================
# SQLAlchemy Configuration (schema definition)
# ============================================================================

# Base para modelos
Base = declarative_base()

_engine = None


def get_engine():
    """
    Lazily build the SQLAlchemy engine

    Only the schema tooling needs it, so it is not created at import time.
    """
    global _engine
    if _engine is None:
        _engine = create_engine(
            _require_database_url(),
            pool_pre_ping=True,  # Verificar conexión antes de usar
        )
    return _engine


# ============================================================================
# psycopg2 Direct Connections (for raw SQL queries)
# ============================================================================

def _require_database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise ConfigurationError("DATABASE_URL not configured", missing_keys=["DATABASE_URL"])
    return database_url


def get_db_connection_dict():
    """
    Get a database connection with RealDictCursor (returns dictionaries)

    Returns:
        psycopg2 connection with RealDictCursor

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM orders")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    return psycopg2.connect(_require_database_url(), cursor_factory=RealDictCursor)


def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Handles intermittent Supabase connection issues by:
    - Retrying failed connections up to max_retries times
    - Adding exponential backoff between retries
    - Logging connection attempts for debugging

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)

    Returns:
        psycopg2 connection with RealDictCursor

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    database_url = _require_database_url()
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url, cursor_factory=RealDictCursor)

            # Test connection with a simple query
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                # Exponential backoff
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

    raise last_error if last_error else ConfigurationError("Connection failed after all retries")


@contextmanager
def transaction():
    """
    Context manager for a single database transaction

    Commits when the block exits normally, rolls back on any exception and
    always closes the connection.

    Usage:
        with transaction() as conn:
            wallets.add_transaction(user_id, 500, 'recharge', conn=conn)
            earnings.decrement_available(user_id, 500, conn=conn)
    """
    conn = get_db_connection_dict_with_retry()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
