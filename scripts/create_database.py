#!/usr/bin/env python
"""Create the PostgreSQL database named in DATABASE_URL, then build the schema.

Usage:
  python scripts/create_database.py [--password PW] [--no-schema]

Run `alembic upgrade head` instead of relying on --schema in deployed
environments; the schema step is meant for local setups.
"""
import argparse
import os
import sys

# Ensure project root is on sys.path so `app` package can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import psycopg2
from psycopg2 import sql, OperationalError
from sqlalchemy.engine import make_url

from app.config import settings


def ensure_database(url, password):
    conn = psycopg2.connect(
        dbname="postgres",
        user=url.username,
        password=password,
        host=url.host or "localhost",
        port=url.port or 5432,
    )
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_database WHERE datname=%s", (url.database,))
            if cur.fetchone():
                print(f"Database '{url.database}' already exists.")
            else:
                cur.execute(sql.SQL("CREATE DATABASE {};").format(sql.Identifier(url.database)))
                print(f"Database '{url.database}' created.")
    finally:
        conn.close()


def create_schema():
    from app.database import Base, engine
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    print("Tables:", ", ".join(sorted(Base.metadata.tables)))


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--password", "-p", help="Postgres admin password")
    parser.add_argument("--no-schema", action="store_true", help="Only create the database")
    args = parser.parse_args()

    url = make_url(settings.DATABASE_URL)
    if not url.drivername.startswith("postgresql"):
        print("DATABASE_URL is not PostgreSQL; nothing to create.")
    elif not url.database:
        print("No database name found in DATABASE_URL")
        sys.exit(1)
    else:
        try:
            ensure_database(url, args.password or os.getenv("POSTGRES_PASSWORD") or url.password)
        except OperationalError as e:
            print("Could not connect to Postgres. Provide the password via --password or POSTGRES_PASSWORD.")
            print(e)
            sys.exit(1)

    if not args.no_schema:
        create_schema()


if __name__ == "__main__":
    main()
