#!/usr/bin/env python3
"""
Database Init Script

Creates all tables and seeds the fixed roles.
Usage: python scripts/init_db.py
"""
import sys
sys.path.insert(0, '.')

from mbkm.core.logging import get_logger
from mbkm.db.postgres import engine
from mbkm.db.schema import create_all, seed_roles

logger = get_logger("init_db")


def main():
    create_all(engine)
    logger.info("Tables created on %s", engine.url.render_as_string(hide_password=True))
    added = seed_roles(engine)
    logger.info("Seeded %d role(s)", added)


if __name__ == "__main__":
    main()
