"""
Database module - PostgreSQL connection and schema.
"""
from mbkm.db.postgres import get_db_session, test_postgres_connection

__all__ = [
    "get_db_session",
    "test_postgres_connection",
]
