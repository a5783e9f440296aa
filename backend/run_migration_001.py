#!/usr/bin/env python3
"""
Apply migrations/001_initial.sql (competitions and fixtures tables).
No psql required. From repo root: python3 backend/run_migration_001.py
Requires MD_DATABASE_URL (or DATABASE_URL) in the environment, or .env in backend/.
"""
import asyncio
import os
import sys
from pathlib import Path

# Backend dir on path so "shared" resolves (run from repo root or backend/)
_backend_dir = os.path.dirname(os.path.abspath(__file__))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)
os.chdir(_backend_dir)

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shared.config import get_settings
from shared.utils.database import DatabaseManager

MIGRATION_FILE = Path(_backend_dir) / "migrations" / "001_initial.sql"


def split_statements(sql: str) -> list[str]:
    """Split a migration file into statements; comments and blank chunks are dropped."""
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


async def main() -> None:
    settings = get_settings()
    db = DatabaseManager(settings)
    await db.connect()
    try:
        async with db.write_session() as session:
            for stmt in split_statements(MIGRATION_FILE.read_text(encoding="utf-8")):
                await session.execute(text(stmt))
        print(f"Migration 001 applied on {settings.database_url_safe_log}: competitions and fixtures ready.")
    except SQLAlchemyError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        await db.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
