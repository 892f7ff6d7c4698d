"""
Core services for medication sync.

This package contains the reconciliation engine, the health store boundary
and the sync orchestrator built on top of them.
"""

from .health_store import CallableHealthStore, HealthStore, Result
from .reconciliation import group_records_by_name, plan_external_import, reconcile
from .sync_service import ExternalFetchError, MedicationSyncService, perform_two_way_sync

__all__ = [
    "HealthStore",
    "CallableHealthStore",
    "Result",
    "reconcile",
    "group_records_by_name",
    "plan_external_import",
    "MedicationSyncService",
    "ExternalFetchError",
    "perform_two_way_sync",
]
