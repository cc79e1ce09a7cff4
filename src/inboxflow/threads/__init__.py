"""Thread list cache, view reconciliation, view counts, and the session."""

from inboxflow.threads.counts import ViewCountPoller
from inboxflow.threads.reconcile import (
    PendingReconciliation,
    ReconciliationScheduler,
    ReconcileStatus,
)
from inboxflow.threads.session import MailboxSession
from inboxflow.threads.store import ThreadListStore, apply_label_change, relabel_thread
from inboxflow.threads.views import MoveOutcome, ViewReconciler, managed_labels

__all__ = [
    "MailboxSession",
    "MoveOutcome",
    "PendingReconciliation",
    "ReconcileStatus",
    "ReconciliationScheduler",
    "ThreadListStore",
    "ViewCountPoller",
    "ViewReconciler",
    "apply_label_change",
    "managed_labels",
    "relabel_thread",
]
