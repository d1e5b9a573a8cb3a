"""Reconciliation package for merging local training sessions with VATUSA records."""
from reconciliation.binder import CrossReferenceConflict, bind_session
from reconciliation.engine import SyncResult, TrainingRecordSyncEngine
from reconciliation.matcher import MatchConfidence, find_match_with_confidence, find_unique_match
from reconciliation.resolver import ResolveOutcome, SessionResolver
from reconciliation.scheduler import ReconciliationScheduler, ReconciliationState, SyncAlreadyRunning, run_lock
from reconciliation.similarity import SIMILARITY_THRESHOLD, dice_similarity

__all__ = [
    'CrossReferenceConflict',
    'bind_session',
    'SyncResult',
    'TrainingRecordSyncEngine',
    'MatchConfidence',
    'find_match_with_confidence',
    'find_unique_match',
    'ResolveOutcome',
    'SessionResolver',
    'ReconciliationScheduler',
    'ReconciliationState',
    'SyncAlreadyRunning',
    'run_lock',
    'SIMILARITY_THRESHOLD',
    'dice_similarity',
]
