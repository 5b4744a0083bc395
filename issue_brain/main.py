"""Main entry point: keep the issue store in sync on a schedule."""

import signal
import threading

from issue_brain.sync.scheduler import start_scheduler, stop_scheduler
from issue_brain.utils.logging import configure_logging, get_logger


def main() -> None:
    """Start the periodic issue sync and block until interrupted."""
    configure_logging()
    logger = get_logger(__name__)

    logger.info("starting_issue_brain")

    stop_event = threading.Event()

    def shutdown_handler(signum, frame):
        logger.info("shutdown_signal_received", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    start_scheduler()

    try:
        stop_event.wait()
    finally:
        stop_scheduler()
        logger.info("issue_brain_shutdown_complete")


if __name__ == "__main__":
    main()
