import logging
import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from services.seed import is_empty, load_demo_data


def populate_database() -> bool:
    """Create the tables and load the demo warehouse into an empty database."""
    init_db()
    session = SessionLocal()
    try:
        if not is_empty(session):
            print("Database already holds users or products, nothing loaded.")
            return False
        load_demo_data(session)
        print("Demo warehouse loaded. Log in as admin/admin123, manager/manager123 or worker/worker123.")
        return True
    finally:
        session.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(0 if populate_database() else 1)
