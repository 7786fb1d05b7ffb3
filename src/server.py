"""Payment reconciliation worker.

Runs the reconciliation sweep for the ordering domain every few minutes
until interrupted, or a single pass with ``--once``.

Usage:
    python src/server.py                 # Sweep every RECONCILIATION_INTERVAL_SECONDS (default 300)
    python src/server.py --interval 60   # Sweep every minute
    python src/server.py --once          # Run one pass and exit
    python src/server.py --retry-failed  # Retry failed payments, then exit
    python src/server.py --setup-db      # Create SQL tables before starting
"""

import argparse
import signal

import structlog

from ordering.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def _get_domain():
    """Import and initialize the ordering domain."""
    from ordering.domain import ordering

    ordering.init()
    return ordering


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ordering payment reconciliation worker")
    parser.add_argument("--interval", type=float, help="Seconds between sweeps")
    parser.add_argument("--once", action="store_true", help="Run a single reconciliation pass and exit")
    parser.add_argument("--retry-failed", action="store_true", help="Retry failed payments and exit")
    parser.add_argument("--setup-db", action="store_true", help="Create SQL tables before running")
    return parser


def run(args, domain) -> int:
    from ordering.reconciliation.retry import retry_failed_payments
    from ordering.reconciliation.scheduler import ReconciliationScheduler

    if args.setup_db:
        from ordering.utils.db import setup_db

        setup_db(domain)

    if args.retry_failed:
        with domain.domain_context():
            report = retry_failed_payments()
        return 1 if report.failed else 0

    scheduler = ReconciliationScheduler(domain, interval=args.interval)

    if args.once:
        report = scheduler.run_once()
        return 1 if report.failed else 0

    def _shutdown(signum, frame):  # noqa: ARG001
        logger.info("Shutdown requested", signal=signal.Signals(signum).name)
        scheduler.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    scheduler.run_forever()
    return 0


def main(argv=None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    return run(args, _get_domain())


if __name__ == "__main__":
    raise SystemExit(main())
