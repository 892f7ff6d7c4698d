"""
Two-way medication sync against an external health store.

Pipeline for one sync run:
1. Fetch external records (a failure degrades to "no records")
2. Reconcile them with the app's active medications
3. Write every unmatched app medication back to the store, concurrently
4. Attach the aggregate write outcome to the result

Only this module performs I/O. Callers are expected to run at most one
sync at a time.
"""

import asyncio
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from medsync.config import SyncConfig
from medsync.domain.models import (
    ExternalImportResult,
    Medication,
    MedicationDoseRecord,
    MedicationSyncResult,
)
from medsync.services.health_store import (
    CallableHealthStore,
    FetchRecords,
    HealthStore,
    Result,
    WriteRecord,
    call_with_timeout,
    logger,
)
from medsync.services.reconciliation import plan_external_import, reconcile

FetchErrorHook = Callable[[Exception], None]


class ExternalFetchError(RuntimeError):
    """Raised instead of degrading when strict fetch errors are enabled."""


class MedicationSyncService:
    """
    Orchestrates reconciliation and write-back for one health store.

    Fetch failures are swallowed by default and the sync continues with an
    empty record list. Pass ``on_fetch_error`` to observe them, or enable
    ``strict_fetch_errors`` to raise ``ExternalFetchError`` instead.
    """

    def __init__(
        self,
        store: HealthStore,
        config: SyncConfig | None = None,
        on_fetch_error: FetchErrorHook | None = None,
    ) -> None:
        self.store = store
        self.config = config or SyncConfig()
        self.on_fetch_error = on_fetch_error
        self.logger = logger.bind(component="medication_sync", store=store.store_name)

    async def fetch_external_records(self) -> list[MedicationDoseRecord]:
        """Fetch records, falling back to an empty list on failure."""
        try:
            result: Result[list[MedicationDoseRecord], Exception] = (
                await self.store.fetch_medication_records()
            )
        except Exception as e:
            result = Result.err(e)

        if result.is_ok():
            return list(result.unwrap())

        error = result.unwrap_err()
        self.logger.warning("external_fetch_failed", error=str(error))

        if self.on_fetch_error is not None:
            try:
                self.on_fetch_error(error)
            except Exception as hook_error:
                self.logger.exception("fetch_error_hook_failed", error=str(hook_error))

        if self.config.strict_fetch_errors:
            raise ExternalFetchError(
                f"Failed to fetch medication records from {self.store.store_name}"
            ) from error
        return []

    def reconcile(
        self,
        app_medications: Iterable[Medication],
        external_records: Iterable[MedicationDoseRecord],
    ) -> MedicationSyncResult:
        """Run the reconciliation engine with the configured tolerance."""
        return reconcile(
            app_medications,
            external_records,
            tolerance_ratio=self.config.dosage_tolerance_ratio,
        )

    async def perform_two_way_sync(
        self, app_medications: Iterable[Medication]
    ) -> MedicationSyncResult:
        """Fetch, reconcile and write back; always returns a report."""
        medications = list(app_medications)
        sync_start = time.perf_counter()
        self.logger.info("medication_sync_starting", app_medications=len(medications))

        external_records = await self.fetch_external_records()
        result = self.reconcile(medications, external_records)

        write_success = await self.write_medications(result.medications_to_write_to_external_store)
        result = result.model_copy(update={"external_write_success": write_success})

        self.logger.info(
            "medication_sync_completed",
            matched=len(result.matched_medications),
            unmatched_records=len(result.unmatched_health_records),
            written=len(result.medications_to_write_to_external_store),
            write_success=write_success,
            duration_seconds=round(time.perf_counter() - sync_start, 3),
        )
        return result

    async def write_medications(self, medications: Iterable[Medication]) -> bool:
        """
        Write one dose per medication, dated now, and AND the outcomes.

        All writes are attempted and awaited even after a failure. An empty
        list counts as success.
        """
        pending = list(medications)
        if not pending:
            return True

        date_taken = datetime.now(UTC)
        semaphore = asyncio.Semaphore(self.config.max_concurrent_writes)

        async def write_one(medication: Medication) -> bool:
            async with semaphore:
                return await self._write_dose(medication, date_taken)

        async with asyncio.TaskGroup() as task_group:
            tasks = [task_group.create_task(write_one(medication)) for medication in pending]

        return all(task.result() for task in tasks)

    async def record_medication_taken(
        self, medication: Medication, date_taken: datetime | None = None
    ) -> bool:
        """Record a single dose of ``medication``; never raises."""
        success = await self._write_dose(medication, date_taken or datetime.now(UTC))
        if success:
            self.logger.info("medication_dose_recorded", medication=medication.name)
        return success

    async def import_from_external_store(
        self, existing_medications: Iterable[Medication]
    ) -> ExternalImportResult:
        """Propose app medications for external records the app does not track yet."""
        existing = list(existing_medications)
        external_records = await self.fetch_external_records()

        result = plan_external_import(
            existing,
            external_records,
            frequency=self.config.imported_frequency,
            note=self.config.import_note,
            store_name=self.config.store_name,
        )
        self.logger.info(
            "external_import_planned",
            total=result.total_external_medications,
            new=len(result.new_medications_to_add),
            matched=result.matched_medications,
        )
        return result

    async def _write_dose(self, medication: Medication, date_taken: datetime) -> bool:
        try:
            success = await call_with_timeout(
                self.store.write_medication_dose(medication.name, medication.dosage, date_taken),
                self.config.write_timeout_seconds,
            )
        except TimeoutError:
            self.logger.warning(
                "external_write_timeout",
                medication=medication.name,
                timeout_seconds=self.config.write_timeout_seconds,
            )
            return False
        except Exception as e:
            self.logger.warning("external_write_failed", medication=medication.name, error=str(e))
            return False

        if not success:
            self.logger.warning(
                "external_write_failed", medication=medication.name, error="rejected by store"
            )
        return bool(success)


async def perform_two_way_sync(
    app_medications: Iterable[Medication],
    fetch_external_records: FetchRecords,
    write_record: WriteRecord,
    config: SyncConfig | None = None,
    on_fetch_error: FetchErrorHook | None = None,
) -> MedicationSyncResult:
    """Run one two-way sync against a store given as two callables."""
    store = CallableHealthStore(fetch_external_records, write_record)
    service = MedicationSyncService(store, config=config, on_fetch_error=on_fetch_error)
    return await service.perform_two_way_sync(app_medications)
