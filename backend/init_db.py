#!/usr/bin/env python3
# backend/init_db.py
"""
Database initialization script.

Creates every record store table and seeds the single app_settings row.

This script can be run from any directory:
    python backend/init_db.py
    cd backend && python init_db.py
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so 'fintrack' package is importable
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from fintrack.database import SessionLocal, engine
from fintrack.models import AppSettings, Base


def init_db() -> None:
    """Create all tables defined in models and a default settings row."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as session:
        if session.query(AppSettings).first() is None:
            session.add(AppSettings())
            session.commit()
            print("Default settings created")
    print("Tables created successfully!")


if __name__ == "__main__":
    init_db()
