#!/usr/bin/env python3
"""
SoundNest database setup
Creates the tables and default song categories before the first deploy.

    python setup_database.py              create missing tables
    python setup_database.py --recreate   drop everything first (asks unless --yes
                                          or FORCE_RECREATE=true)
"""

import argparse
import os
import sys

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from soundnest.config import get_settings
from soundnest.database import models


def existing_tables(engine):
    return sorted(inspect(engine).get_table_names())


def can_connect(engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        print(f"✗ Cannot reach the database: {e}")
        return False
    return True


def confirm_recreate(assume_yes: bool) -> bool:
    if assume_yes or os.getenv("FORCE_RECREATE") == "true":
        return True
    answer = input("Drop every SoundNest table and its data? (yes/no): ")
    return answer.strip().lower() == "yes"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Initialize the SoundNest database")
    parser.add_argument("--recreate", action="store_true", help="drop all tables before creating them")
    parser.add_argument("--yes", action="store_true", help="do not ask before dropping tables")
    args = parser.parse_args(argv)

    settings = get_settings()
    target = settings.database_url.split("@")[-1]
    backend = "PostgreSQL" if settings.database_url.startswith("postgresql") else "SQLite"
    print(f"SoundNest database setup: {backend} ({target})")

    engine = models.init_engine(settings.database_url)
    if not can_connect(engine):
        print("Set DATABASE_URL, or DB_HOST/DB_PORT/DB_NAME/DB_USER/DB_PASSWORD, and retry.")
        sys.exit(1)

    tables = existing_tables(engine)
    if tables:
        print(f"Found {len(tables)} existing tables: {', '.join(tables)}")
        if args.recreate:
            if not confirm_recreate(args.yes):
                print("Aborted, nothing was dropped.")
                return
            models.Base.metadata.drop_all(bind=engine)
            print("Dropped existing tables")

    try:
        models.init_database()
    except SQLAlchemyError as e:
        print(f"✗ Database initialization failed: {e}")
        sys.exit(1)

    after = existing_tables(engine)
    kept = [] if args.recreate else tables
    print(f"✓ Ready: {len(after)} tables ({len(set(after) - set(kept))} new), "
          f"{len(models.DEFAULT_CATEGORIES)} default categories")


if __name__ == "__main__":
    main()
