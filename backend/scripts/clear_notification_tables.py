#!/usr/bin/env python3
"""
Completely clear notification state (delivery logs, in-app notifications, subscriptions). Fast (TRUNCATE, PostgreSQL).
Run with backend stopped to avoid locks: cd backend && python scripts/clear_notification_tables.py
"""
import sys
from pathlib import Path

# backend/scripts/ -> backend/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from stocknotify.db.session import engine
from stocknotify.db.tables import NOTIFICATION_TABLE_NAMES


def main():
    tables = ", ".join(NOTIFICATION_TABLE_NAMES)
    print(f"Connecting to DB and truncating {tables} ...")
    with engine.connect() as conn:
        conn.execute(text(f"TRUNCATE TABLE {tables} RESTART IDENTITY CASCADE"))
        conn.commit()
    print("Done. Notification tables are empty; users, products and preferences are kept.")


if __name__ == "__main__":
    main()
