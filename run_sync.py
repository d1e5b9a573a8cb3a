#!/usr/bin/env python3
"""
VATUSA training record sync runner.

Run one reconciliation pass between the local training session database and
VATUSA. Intended to be invoked periodically by cron or a systemd timer; the
run lock refuses overlapping invocations and the persisted schedule state
makes frequent invocations cheap.

Usage:
    python run_sync.py [--force] [--database PATH] [--data-dir PATH]

Exit codes:
    0  success, or nothing to do
    1  the run was aborted (VATUSA fetch or local load failed)
    2  invalid configuration
    3  another run is in progress
"""

import argparse
import asyncio
import json
import sys

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_LOCKED = 3


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Sync training records with VATUSA')
    parser.add_argument('--force', '-f', action='store_true', help='Run even if the schedule says it is not due')
    parser.add_argument('--database', help='Training session SQLite database (or set VZAU_DATABASE_PATH)')
    parser.add_argument('--data-dir', '-d', help='State/lock directory (or set VZAU_DATA_DIR)')
    parser.add_argument('--facility', help='Facility code (or set VZAU_FACILITY_ID)')
    parser.add_argument('--log-level', help='Log level (or set VZAU_LOG_LEVEL)')
    return parser.parse_args(argv)


async def run_once(config):
    """Run one sync pass with a client scoped to this event loop."""
    from reconciliation.engine import TrainingRecordSyncEngine
    from training.store import SQLiteSessionStore
    from vatusa.client import VatusaClient

    store = SQLiteSessionStore(config.database_path)

    if not config.has_api_key:
        return await TrainingRecordSyncEngine(store, None, config.facility_id).run_async()

    async with VatusaClient(
        api_key=config.vatusa_api_key,
        facility=config.facility_id,
        base_url=config.vatusa_base_url,
        timeout=config.request_timeout,
        max_retries=config.max_retries,
        retry_base_delay=config.retry_base_delay,
    ) as client:
        engine = TrainingRecordSyncEngine(store, client, config.facility_id)
        return await engine.run_async()


def main(argv=None):
    args = parse_args(argv)

    from shared.log import create_logger
    from shared.logging_config import configure_logging
    from validation.config import validate_config

    overrides = {}
    if args.database:
        overrides['database_path'] = args.database
    if args.data_dir:
        overrides['data_dir'] = args.data_dir
    if args.facility:
        overrides['facility_id'] = args.facility
    if args.log_level:
        overrides['log_level'] = args.log_level

    config, error = validate_config(overrides)
    if config is None:
        print(f"Invalid configuration: {error}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(config.log_level, json_output=config.json_logs)
    _, _, log_info, log_warn, log_error = create_logger("Runner")
    config.log_config()

    if not config.enabled:
        log_info("Training record sync disabled (VZAU_ENABLED=false)")
        return EXIT_OK

    from reconciliation.scheduler import ReconciliationScheduler, SyncAlreadyRunning, run_lock

    scheduler = ReconciliationScheduler(config.data_dir)
    try:
        with run_lock(config.data_dir):
            if not args.force and not scheduler.is_due(config.sync_interval):
                log_info(f"Sync not due (interval={config.sync_interval}); use --force to run anyway")
                return EXIT_OK

            result = asyncio.run(run_once(config))
            scheduler.record_run(result)
    except SyncAlreadyRunning as e:
        log_warn(str(e))
        return EXIT_LOCKED

    print(json.dumps({
        **result.summary(),
        'conflicts': result.conflicts,
        'deferred': result.deferred,
        'skipped_reason': result.skipped_reason,
        'error': result.error,
    }))

    if result.failed:
        log_error(f"Training record sync failed: {result.error}")
        return EXIT_FAILED
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
