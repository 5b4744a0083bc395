#!/usr/bin/env python3
"""Run a single issue sync (full on first run, incremental afterwards)."""

import sys
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from issue_brain.sync.orchestrator import get_syncer
from issue_brain.utils.logging import configure_logging, get_logger


def main() -> None:
    """Sync GitHub issues into the issue store once."""
    configure_logging()
    logger = get_logger(__name__)

    logger.info("starting_issue_sync")

    try:
        result = get_syncer().sync()

        print("\nSync Results:")
        print("-" * 40)
        print(f"  Synced:   {result.synced} issues")
        print(f"  Skipped:  {len(result.skipped)} issues")
        print(f"  Notified: {result.notified} issues")
        print("-" * 40)
        print(f"  Total in store: {result.total if result.total is not None else 'unchanged'}")
        if result.skipped:
            print(f"  Skipped numbers: {', '.join(f'#{n}' for n in result.skipped)}")

    except Exception as e:
        logger.error("sync_failed", error=str(e))
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
