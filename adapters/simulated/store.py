"""
Simulated device health store.

Stands in for the platform health-record store during development and in
tests. It keeps medication entries in memory, serves them as dose records
dated at fetch time and records every write as a new entry.
"""

import asyncio
import random
from datetime import UTC, datetime

from medsync.domain.matching import normalize_medication_name
from medsync.domain.models import DEFAULT_STORE_NAME, ExternalMedication, MedicationDoseRecord
from medsync.services.health_store import Result, logger


class SimulatedHealthStore:
    """
    In-memory health store with configurable failure behaviour.

    ``failure_rate`` is the probability that a fetch fails with a
    ``ConnectionError``; ``failing_medications`` lists names whose writes
    are rejected.
    """

    def __init__(
        self,
        medications: list[ExternalMedication] | None = None,
        store_name: str = DEFAULT_STORE_NAME,
        failure_rate: float = 0.0,
        failing_medications: set[str] | None = None,
        latency_seconds: float = 0.0,
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be between 0 and 1, got {failure_rate}")

        self.store_name = store_name
        self.medications: list[ExternalMedication] = list(medications or [])
        self.failure_rate = failure_rate
        self.failing_medications = {
            normalize_medication_name(name) for name in failing_medications or set()
        }
        self.latency_seconds = latency_seconds
        self.written: list[MedicationDoseRecord] = []
        self.fetch_count = 0
        self.logger = logger.bind(source=store_name)

    async def fetch_medication_records(self) -> Result[list[MedicationDoseRecord], Exception]:
        self.fetch_count += 1
        try:
            if self.latency_seconds > 0:
                await asyncio.sleep(self.latency_seconds)

            if self.failure_rate > 0 and random.random() < self.failure_rate:
                raise ConnectionError(f"Failed to read medications from {self.store_name}")

            fetched_at = datetime.now(UTC)
            records = [medication.to_dose_record(fetched_at) for medication in self.medications]

            self.logger.info("medication_records_fetched", count=len(records))
            return Result.ok(records)

        except Exception as e:
            self.logger.error("medication_records_fetch_failed", error=str(e))
            return Result.err(e)

    async def write_medication_dose(self, name: str, dosage: str, date_taken: datetime) -> bool:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)

        if normalize_medication_name(name) in self.failing_medications:
            self.logger.warning("medication_dose_rejected", medication=name)
            return False

        self.written.append(MedicationDoseRecord(name=name, dosage=dosage, date_taken=date_taken))
        self.medications.append(ExternalMedication(display_name=name, dosage_string=dosage))
        self.logger.info("medication_dose_written", medication=name, dosage=dosage)
        return True
