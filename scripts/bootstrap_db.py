"""
Scripts - Bootstrap Database.

============================================================
RESPONSIBILITY
============================================================
Initializes the trend database for first-time setup.

- Verifies the connection
- Creates tables, indexes and constraints
- Reports row counts

============================================================
USAGE
============================================================
python -m scripts.bootstrap_db

Options:
  --database-url     Override DATABASE_URL
  --validate-only    Only verify the connection, don't create

============================================================
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from storage import (
    TrendStore,
    create_all_tables,
    create_database_engine,
    create_session_factory,
)
from storage.database import verify_database_connection
from storage.repositories import RepositoryException

logger = logging.getLogger("bootstrap_db")


def main() -> None:
    """Bootstrap database entry point."""
    parser = argparse.ArgumentParser(description="Create the trend database schema")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Database URL (default: DATABASE_URL or sqlite:///trends.db)",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only verify the connection",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    engine = create_database_engine(args.database_url)

    try:
        verify_database_connection(engine)
    except RepositoryException as e:
        logger.error(f"Bootstrap aborted: {e}")
        sys.exit(1)

    if args.validate_only:
        return

    create_all_tables(engine)
    store = TrendStore(create_session_factory(engine))
    logger.info(f"Database ready: {store.count_trends()} trends")


if __name__ == "__main__":
    main()
