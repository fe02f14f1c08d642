"""Storage reconciliation between the uploads tree and attachment records."""

from noteport.reconcile.models import CleanupMode, CleanupOptions, CleanupReport, ModeResult
from noteport.reconcile.services import StorageReconciler

__all__ = [
    "CleanupMode",
    "CleanupOptions",
    "CleanupReport",
    "ModeResult",
    "StorageReconciler",
]
