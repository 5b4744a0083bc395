#!/usr/bin/env python3
"""Create the pgvector schema used by the Postgres issue store."""

import sys
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from issue_brain.config import get_settings
from issue_brain.store.postgres import PostgresIssueStore
from issue_brain.utils.logging import configure_logging


def main() -> None:
    configure_logging()
    settings = get_settings()
    PostgresIssueStore(settings.database_url, settings.embedding_dimensions).create_schema()
    print("Schema ready.")


if __name__ == "__main__":
    main()
