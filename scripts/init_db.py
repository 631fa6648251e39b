"""
Database Initialization Script for Hooked on Flies

Creates the tables the back-office service reads and writes:
flies, seasonal_fly_patterns, waitlist, data_deletion_requests.

Run this script once after setting up your database connection.
Existing tables are left untouched.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import inspect, text

from src.common.settings import get_settings
from src.hosted import get_db_engine, metadata


def init_database():
    """Initialize database schema"""

    settings = get_settings()

    if not settings.database_url:
        print("❌ ERROR: DATABASE_URL not found in .env file")
        return False

    print("=" * 60)
    print("Hooked on Flies Database Initialization")
    print("=" * 60)
    print()

    try:
        engine = get_db_engine(settings)

        with engine.connect() as conn:
            print("✅ Connected to database")
            if engine.dialect.name == "postgresql":
                version = conn.execute(text("SELECT version();")).fetchone()[0]
                print(f"PostgreSQL version: {version.split(',')[0]}")
            print()

        existing = set(inspect(engine).get_table_names())

        print("Creating database schema...")
        print("-" * 60)
        for table in metadata.sorted_tables:
            state = "exists" if table.name in existing else "created"
            print(f"Table {table.name}: {state}")

        metadata.create_all(engine)

        print("-" * 60)
        print("✅ Database schema ready")
        return True

    except Exception as e:
        print(f"❌ ERROR: {e}")
        return False


if __name__ == "__main__":
    success = init_database()
    sys.exit(0 if success else 1)
