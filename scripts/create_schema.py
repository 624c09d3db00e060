#!/usr/bin/env python3
"""Ensure the tour tables exist and echo the DDL for reference."""

from tourscore.db import SCHEMA_STATEMENTS, ensure_schema
from tourscore.settings import load_settings


def main() -> None:
    settings = load_settings()
    ensure_schema(settings.database_url)
    print("Schema ensured.")
    print(f"Database url: {settings.database_url}")

    print("\nSchema DDL dump:")
    for statement in SCHEMA_STATEMENTS:
        print(statement.strip())


if __name__ == "__main__":
    main()
