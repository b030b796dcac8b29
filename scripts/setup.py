#!/usr/bin/env python3
"""Setup script for the railway reservation ledger."""

import argparse
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from railway_ledger.core.config import Settings
from railway_ledger.core.database import close_db, create_db_engine, create_session_factory, init_db
from railway_ledger.services.snapshot_service import SnapshotStore, default_snapshot

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database(settings: Settings) -> None:
    """Create the schema and seed the default catalog if nothing is stored."""
    logger.info("Setting up database at %s", settings.database_url)

    engine = create_db_engine(settings.database_url)
    try:
        init_db(engine)
        logger.info("Database schema created")

        store = SnapshotStore(create_session_factory(engine))
        if not store.load().is_empty:
            logger.info("Snapshot already exists, skipping seed data...")
            return

        store.save(default_snapshot())
        logger.info("Default services and accounts created")
    finally:
        close_db(engine)


def main() -> None:
    """Main setup function."""
    parser = argparse.ArgumentParser(description="Initialize the ledger database")
    parser.add_argument("--database-url", dest="database_url", help="SQLAlchemy database URL")
    args = parser.parse_args()

    settings = Settings(database_url=args.database_url) if args.database_url else Settings()
    setup_database(settings)

    logger.info("Setup completed successfully!")
    logger.info("You can now start a session with: railway-ledger")


if __name__ == "__main__":
    main()
