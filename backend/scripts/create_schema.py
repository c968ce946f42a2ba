"""
Create the PurVita database schema from the SQLAlchemy models

Creates every table that does not exist yet (existing tables are left
untouched). gen_random_uuid() needs PostgreSQL 13+ or the pgcrypto extension.

Usage:
    python3 create_schema.py [--dry-run]
"""
import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv

# Load environment (backend/.env)
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

from sqlalchemy.schema import CreateTable

from purvita.core.database import Base, get_engine
import purvita.models  # noqa: F401  (registers tables on Base.metadata)

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Create PurVita tables")
    parser.add_argument("--dry-run", action="store_true", help="Print the DDL instead of executing it")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    tables = Base.metadata.sorted_tables

    if args.dry_run:
        from sqlalchemy.dialects import postgresql
        for table in tables:
            print(str(CreateTable(table).compile(dialect=postgresql.dialect())).strip() + ";\n")
        return

    engine = get_engine()
    Base.metadata.create_all(engine)
    logger.info(f"Schema ready: {len(tables)} tables ({', '.join(t.name for t in tables)})")


if __name__ == "__main__":
    main()
