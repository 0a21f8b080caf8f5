#!/usr/bin/env python3
"""
GlucoTrack - Database Table Creation Script
Creates all tables using SQLAlchemy ORM
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import settings
from app.database import build_engine, init_db
from app.models import Base


def create_all_tables():
    """Create all database tables"""
    print("=" * 60)
    print("GlucoTrack - Database Table Creation")
    print("=" * 60)

    db_url = settings.database_url
    print(f"\nConnecting to database...")
    print(f"URL: {db_url.split('@')[1] if '@' in db_url else db_url}")

    try:
        init_db(build_engine(db_url))

        print("\n" + "=" * 60)
        print("✓ All tables created successfully!")
        print("=" * 60)

        print("\nTables created:")
        for table in Base.metadata.sorted_tables:
            print(f"  - {table.name}")

        return 0

    except Exception as e:
        print(f"\n✗ Error creating tables: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(create_all_tables())
