"""
Training record sync engine for VATUSA reconciliation.

Merges the facility's own training sessions with the records VATUSA holds:
fetch both sets, cross-reference local sessions that VATUSA already knows
about, then import or refresh sessions from VATUSA's copy.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from reconciliation.binder import CrossReferenceConflict, bind_session
from reconciliation.matcher import MatchConfidence, find_match_with_confidence
from reconciliation.resolver import ResolveOutcome, SessionResolver
from shared.log import create_logger
from training.store import StoreError
from vatusa.exceptions import VatusaError

if TYPE_CHECKING:
    from training.store import SessionStore
    from vatusa.client import VatusaClient
    from vatusa.models import VatusaTrainingRecord

_, log_debug, log_info, log_warn, log_error = create_logger("Sync")


@dataclass
class SyncResult:
    """Result summary from one sync run.

    Attributes:
        synced: Local sessions newly cross-referenced to a VATUSA record
        added: Sessions imported from VATUSA
        updated: Sessions overwritten from VATUSA's newer copy
        unchanged: Cross-referenced sessions that needed no write
        ambiguous: Sessions with more than one candidate VATUSA record
        conflicts: Cross-reference consistency violations refused
        deferred: VATUSA records left for the next run because binding their
                  matched session failed
        sessions_checked: Local sessions loaded
        records_in_scope: VATUSA records for our facility
        skipped_reason: Why the run did no work, if it short-circuited
        error: Fatal error that aborted the run before any write
        errors: Non-fatal per-record error messages
    """
    synced: int = 0
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    ambiguous: int = 0
    conflicts: int = 0
    deferred: int = 0
    sessions_checked: int = 0
    records_in_scope: int = 0
    skipped_reason: Optional[str] = None
    error: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        """True if the run was aborted by a fetch or load failure."""
        return self.error is not None

    def summary(self) -> dict[str, int]:
        """Counts reported to the scheduler."""
        return {'synced': self.synced, 'added': self.added, 'updated': self.updated}


class TrainingRecordSyncEngine:
    """Orchestrates one reconciliation pass.

    The VATUSA client is injected; pass None when no API key is configured
    and the run becomes a logged no-op.

    Concurrent runs are not safe: the engine assumes it is the only writer
    of vatusa_id and the fields it refreshes. Serialise runs with
    reconciliation.scheduler.run_lock.

    Args:
        store: Local session store
        client: VATUSA API client, or None to skip
        facility_id: Our facility code; VATUSA records of other facilities
                     are ignored entirely
    """

    def __init__(
        self,
        store: "SessionStore",
        client: Optional["VatusaClient"],
        facility_id: str,
    ):
        self.store = store
        self.client = client
        self.facility_id = facility_id.upper()
        self.resolver = SessionResolver(store)

    def run(self) -> SyncResult:
        """Run one pass from synchronous code."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> SyncResult:
        """Run one reconciliation pass.

        Execution steps:
            1. Load local sessions and fetch VATUSA records (filtered to our facility)
            2. Short-circuit when either set is empty
            3. Partition sessions into reconciled and unreconciled
            4. Match and bind every unreconciled session
            5. Add or update a session for every in-scope VATUSA record
            6. Log and return the counts

        A fetch failure aborts before any local write. Per-record failures in
        steps 4 and 5 are logged and skipped. A record whose matched session
        failed to bind is not imported in step 5; it waits for the next run.

        Store calls are synchronous and run in the default executor so they
        never block the event loop.
        """
        result = SyncResult()

        if self.client is None:
            log_info("Skipping VATUSA training record sync: no VATUSA API key configured")
            result.skipped_reason = "no_api_key"
            return result

        loop = asyncio.get_running_loop()

        # Step 1: Local sessions
        try:
            sessions = await loop.run_in_executor(None, self.store.find_all)
        except StoreError as e:
            result.error = f"Failed to load training sessions: {e}"
            log_error(result.error)
            return result

        result.sessions_checked = len(sessions)
        if not sessions:
            log_info(f"No {self.facility_id} training sessions found, skipping sync")
            result.skipped_reason = "no_local_sessions"
            return result

        # Step 1: VATUSA records
        try:
            records = await self.client.fetch_training_records(self.facility_id)
        except VatusaError as e:
            result.error = f"Failed to fetch VATUSA training records: {e}"
            log_error(f"{result.error} (facility={self.facility_id}, sessions={len(sessions)})")
            return result

        in_scope = self._filter_in_scope(records)
        result.records_in_scope = len(in_scope)
        if not in_scope:
            log_info(f"No VATUSA training records for {self.facility_id}, skipping sync")
            result.skipped_reason = "no_external_records"
            return result

        # Step 3: Partition
        unreconciled = [s for s in sessions if not s.is_reconciled]
        log_info(
            f"Reconciling {len(sessions)} sessions ({len(unreconciled)} unreconciled) "
            f"against {len(in_scope)} VATUSA records"
        )

        # Step 4: Must finish before step 5 so fresh bindings are visible
        deferred = await loop.run_in_executor(
            None, self._bind_unreconciled, unreconciled, in_scope, result
        )

        # Step 5
        await loop.run_in_executor(None, self._resolve_records, in_scope, result, deferred)

        log_info(f"Synced {result.synced} training records from VATUSA")
        log_info(f"Added {result.added} new training records from VATUSA")
        log_info(f"Updated {result.updated} training sessions with VATUSA's notes")
        if result.conflicts:
            log_warn(f"{result.conflicts} cross-reference conflicts need manual review")

        return result

    def _filter_in_scope(self, records: list["VatusaTrainingRecord"]) -> list["VatusaTrainingRecord"]:
        in_scope = [r for r in records if r.facility_id.upper() == self.facility_id]
        ignored = len(records) - len(in_scope)
        if ignored:
            log_debug(f"Ignoring {ignored} VATUSA records from other facilities")
        return in_scope

    def _bind_unreconciled(self, sessions, records, result: SyncResult) -> set[int]:
        """Bind sessions to their unique match; return ids of records whose bind failed."""
        deferred = set()
        for session in sessions:
            confidence, record, candidates = find_match_with_confidence(session, records)

            if confidence == MatchConfidence.LOW:
                result.ambiguous += 1
                log_debug(
                    f"Session {session.id} has {len(candidates)} candidate VATUSA records "
                    f"({', '.join(str(c.id) for c in candidates)}), leaving unreconciled"
                )
                continue
            if record is None:
                continue

            try:
                if bind_session(self.store, session, record):
                    result.synced += 1
            except CrossReferenceConflict as e:
                result.conflicts += 1
                result.errors.append(str(e))
                log_error(f"Cross-reference conflict: {e}")
            except Exception as e:
                result.errors.append(f"Session {session.id}: {e}")
                deferred.add(record.id)
                log_warn(f"Failed to bind session {session.id} to VATUSA record {record.id}: {e}")

        return deferred

    def _resolve_records(self, records, result: SyncResult, deferred=frozenset()) -> None:
        for record in records:
            if record.id in deferred:
                result.deferred += 1
                log_info(f"Deferring VATUSA record {record.id} to the next run: its matched session could not be bound")
                continue

            try:
                outcome = self.resolver.resolve(record)
            except Exception as e:
                result.errors.append(f"VATUSA record {record.id}: {e}")
                log_warn(f"Failed to import VATUSA record {record.id}: {e}")
                continue

            if outcome == ResolveOutcome.ADDED:
                result.added += 1
            elif outcome == ResolveOutcome.UPDATED:
                result.updated += 1
            else:
                result.unchanged += 1


__all__ = ['SyncResult', 'TrainingRecordSyncEngine']
