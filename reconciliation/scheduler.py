"""
Sync scheduling and run serialisation.

The sync is invoked by an external scheduler (cron, systemd timer), so this
module uses a check-on-invocation pattern: each invocation checks whether a
run is due based on persisted state in reconciliation_state.json, and takes
an exclusive lock so two runs never overlap.
"""

import fcntl
import json
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from typing import Iterator, Optional

from shared.log import create_logger
_, log_debug, log_info, _, _ = create_logger("Scheduler")

# Interval to seconds mapping
INTERVAL_SECONDS = {
    'never': 0,
    'hourly': 3600,
    'daily': 86400,
    'weekly': 604800,
}

LOCK_FILE = 'reconciliation.lock'


class SyncAlreadyRunning(Exception):
    """Another sync run holds the run lock."""


@dataclass
class ReconciliationState:
    """Persisted state for sync scheduling."""
    last_run_time: float = 0.0          # time.time() of last run
    last_synced: int = 0                # sessions cross-referenced
    last_added: int = 0                 # sessions imported
    last_updated: int = 0               # sessions refreshed
    last_conflicts: int = 0             # consistency violations refused
    last_failed: bool = False           # run aborted by fetch/load failure
    last_error: str = ""                # abort reason
    last_skipped_reason: str = ""       # why the run short-circuited
    run_count: int = 0                  # total runs


class ReconciliationScheduler:
    """Manages sync scheduling via persisted state.

    NOT a timer/thread. On each invocation, call is_due() to check if a sync
    should run based on the interval and last run time.
    """

    STATE_FILE = 'reconciliation_state.json'

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.state_path = os.path.join(data_dir, self.STATE_FILE)

    def load_state(self) -> ReconciliationState:
        """Load sync state from disk."""
        try:
            if os.path.exists(self.state_path):
                with open(self.state_path, 'r') as f:
                    data = json.load(f)
                return ReconciliationState(**data)
        except (json.JSONDecodeError, TypeError, KeyError) as e:
            log_debug(f"Failed to load reconciliation state, using defaults: {e}")
        return ReconciliationState()

    def save_state(self, state: ReconciliationState) -> None:
        """Save sync state to disk atomically."""
        tmp_path = self.state_path + '.tmp'
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            with open(tmp_path, 'w') as f:
                json.dump(asdict(state), f, indent=2)
            os.replace(tmp_path, self.state_path)
        except OSError as e:
            log_debug(f"Failed to save reconciliation state: {e}")

    def is_due(self, interval: str, now: Optional[float] = None) -> bool:
        """Check if a sync is due based on interval and last run time.

        Failed runs count as runs: a VATUSA outage is retried at the next
        interval, not on every invocation.

        Args:
            interval: 'never', 'hourly', 'daily', 'weekly'
            now: Current time (default: time.time()). For testing.

        Returns:
            True if a sync should run now.
        """
        interval_secs = INTERVAL_SECONDS.get(interval, 0)
        if interval_secs == 0:
            return False

        if now is None:
            now = time.time()

        state = self.load_state()
        elapsed = now - state.last_run_time
        return elapsed >= interval_secs

    def record_run(self, result, now: Optional[float] = None) -> None:
        """Record a completed sync run.

        Args:
            result: SyncResult from engine.run()
            now: Completion time (default: time.time()). For testing.
        """
        state = self.load_state()
        state.last_run_time = time.time() if now is None else now
        state.last_synced = result.synced
        state.last_added = result.added
        state.last_updated = result.updated
        state.last_conflicts = result.conflicts
        state.last_failed = result.failed
        state.last_error = result.error or ""
        state.last_skipped_reason = result.skipped_reason or ""
        state.run_count += 1
        self.save_state(state)
        log_debug(f"Recorded sync run #{state.run_count}")


@contextmanager
def run_lock(data_dir: str) -> Iterator[None]:
    """Hold an exclusive, non-blocking lock for the duration of a sync run.

    Raises:
        SyncAlreadyRunning: Another process holds the lock.
    """
    os.makedirs(data_dir, exist_ok=True)
    lock_path = os.path.join(data_dir, LOCK_FILE)

    with open(lock_path, 'w') as lock_file:
        try:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise SyncAlreadyRunning(f"Sync lock {lock_path} is held by another run") from e
        try:
            log_debug("Acquired sync run lock")
            yield
        finally:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
            except OSError:
                pass


__all__ = [
    'INTERVAL_SECONDS',
    'ReconciliationScheduler',
    'ReconciliationState',
    'SyncAlreadyRunning',
    'run_lock',
]
