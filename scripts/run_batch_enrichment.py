#!/usr/bin/env python3
"""
Batch Fly Enrichment Script

Classifies flies with the completion service and saves the results, using
the same grouped runner as the admin batch endpoint.

Usage:
    python scripts/run_batch_enrichment.py [--limit N] [--all] [--batch-size N] [--delay SECONDS]

Options:
    --limit N            Only process the first N flies (by name)
    --all                Include flies that already have details (reprocess)
    --batch-size N       Flies per concurrent group (default: BATCH_SIZE or 3)
    --delay SECONDS      Pause between groups (default: BATCH_DELAY_SECONDS or 1)
    --dry-run            List the flies that would be processed and exit
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.common.settings import configure_logging, get_settings
from src.completion import CompletionClient
from src.flies import BatchRunner, enrich_fly
from src.hosted import FlyRepository, get_db_engine

configure_logging()
logger = logging.getLogger(__name__)


def run_enrichment(
    limit: int = None,
    include_complete: bool = False,
    batch_size: int = None,
    delay: float = None,
    dry_run: bool = False,
):
    """
    Run classification over the catalog.

    Args:
        limit: Maximum number of flies to process (None = all)
        include_complete: Also reprocess flies that already have details
        batch_size: Flies per group (defaults to settings)
        delay: Seconds between groups (defaults to settings)
        dry_run: Only list the selection

    Returns:
        BatchProgress, or None for a dry run
    """
    settings = get_settings()
    start_time = time.time()

    repository = FlyRepository(get_db_engine(settings))
    flies = repository.list_flies(incomplete_only=not include_complete)
    if limit:
        flies = flies[:limit]

    logger.info(f"Selected {len(flies)} flies")
    if dry_run:
        for fly in flies:
            logger.info(f"  {fly.name} ({fly.id})")
        return None

    completer = CompletionClient(settings)
    runner = BatchRunner(
        process=lambda fly: enrich_fly(fly, completer, repository),
        batch_size=batch_size or settings.batch_size,
        delay_seconds=settings.batch_delay_seconds if delay is None else delay,
        on_progress=lambda p: logger.info(p.message),
    )
    progress = runner.run(flies)

    duration = time.time() - start_time

    logger.info("=" * 60)
    logger.info("ENRICHMENT COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Total flies: {progress.total}")
    logger.info(f"Succeeded: {progress.succeeded}")
    logger.info(f"Failed: {progress.failed}")
    for message in progress.messages[:10]:
        logger.info(f"  {message}")
    logger.info(f"Duration: {duration:.2f} seconds")
    logger.info("=" * 60)

    return progress


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Classify flies with the completion service and save the results"
    )
    parser.add_argument('--limit', type=int, default=None, help='Only process the first N flies')
    parser.add_argument('--all', action='store_true', help='Include flies that already have details')
    parser.add_argument('--batch-size', type=int, default=None, help='Flies per concurrent group')
    parser.add_argument('--delay', type=float, default=None, help='Pause between groups in seconds')
    parser.add_argument('--dry-run', action='store_true', help='List the selection and exit')

    args = parser.parse_args()

    if args.batch_size is not None and args.batch_size < 1:
        logger.error("batch-size must be at least 1")
        sys.exit(1)

    try:
        progress = run_enrichment(
            limit=args.limit,
            include_complete=args.all,
            batch_size=args.batch_size,
            delay=args.delay,
            dry_run=args.dry_run,
        )
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    if progress is not None and progress.failed:
        logger.warning(f"Completed with {progress.failed} failures")
        sys.exit(2)


if __name__ == "__main__":
    main()
