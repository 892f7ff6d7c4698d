"""
Medication reconciliation engine.

Pure, synchronous functions over the app's medication list and the records
read from the external store. No I/O and no shared state, so they are safe
to call concurrently and give identical results for identical inputs.
"""

from collections import defaultdict
from collections.abc import Iterable

import structlog

from medsync.domain.matching import (
    DEFAULT_TOLERANCE_RATIO,
    are_dosages_compatible,
    normalize_medication_name,
)
from medsync.domain.models import (
    DEFAULT_IMPORT_NOTE,
    DEFAULT_IMPORTED_FREQUENCY,
    DEFAULT_STORE_NAME,
    ExternalImportResult,
    MatchType,
    Medication,
    MedicationDoseRecord,
    MedicationMatch,
    MedicationSyncResult,
)

logger = structlog.get_logger(__name__)


def group_records_by_name(
    records: Iterable[MedicationDoseRecord],
) -> dict[str, list[MedicationDoseRecord]]:
    """Group records by normalized name, keeping input order inside each group."""
    groups: defaultdict[str, list[MedicationDoseRecord]] = defaultdict(list)
    for record in records:
        groups[normalize_medication_name(record.name)].append(record)
    return dict(groups)


def reconcile(
    app_medications: Iterable[Medication],
    external_records: Iterable[MedicationDoseRecord],
    tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO,
) -> MedicationSyncResult:
    """
    Partition active app medications against external records.

    Every active medication ends up either in a match or in the write-back
    list. ``external_write_success`` is left False for the caller to fill in.
    """
    # Snapshot inputs so a live list mutated mid-call cannot skew the result
    medications = [medication for medication in app_medications if medication.is_currently_active]
    records = list(external_records)

    groups = group_records_by_name(records)
    matched: list[MedicationMatch] = []
    to_write: list[Medication] = []

    for medication in medications:
        group = groups.get(normalize_medication_name(medication.name))
        if group is None:
            to_write.append(medication)
            continue

        compatible = [
            record
            for record in group
            if are_dosages_compatible(medication.dosage, record.dosage, tolerance_ratio)
        ]
        matched.append(
            MedicationMatch(
                app_medication=medication,
                external_records=compatible,
                match_type=MatchType.NAME_AND_DOSAGE if compatible else MatchType.NAME_ONLY,
            )
        )

    # Only names backed by a compatible record count as covered. A name-only
    # match leaves its records here as unmatched.
    covered_names = {
        normalize_medication_name(record.name)
        for match in matched
        for record in match.external_records
    }
    unmatched = [
        record for record in records if normalize_medication_name(record.name) not in covered_names
    ]

    logger.debug(
        "medications_reconciled",
        active_medications=len(medications),
        external_records=len(records),
        matched=len(matched),
        unmatched_records=len(unmatched),
        to_write=len(to_write),
    )

    return MedicationSyncResult(
        matched_medications=matched,
        unmatched_health_records=unmatched,
        medications_to_write_to_external_store=to_write,
        external_write_success=False,
    )


def plan_external_import(
    existing_medications: Iterable[Medication],
    external_records: Iterable[MedicationDoseRecord],
    frequency: str = DEFAULT_IMPORTED_FREQUENCY,
    note: str = DEFAULT_IMPORT_NOTE,
    store_name: str = DEFAULT_STORE_NAME,
) -> ExternalImportResult:
    """
    Propose app medications for external records the app does not know yet.

    Existing medications are matched by normalized name regardless of their
    active flag. Each unknown name is proposed once.
    """
    records = list(external_records)
    known_names = {normalize_medication_name(m.name) for m in existing_medications}

    proposed_names: set[str] = set()
    new_medications: list[Medication] = []
    matched_count = 0

    for record in records:
        normalized_name = normalize_medication_name(record.name)
        if normalized_name in known_names:
            matched_count += 1
            continue
        if normalized_name in proposed_names:
            continue

        proposed_names.add(normalized_name)
        new_medications.append(
            Medication(
                name=record.name,
                dosage=record.dosage,
                frequency=frequency,
                full_instructions=note,
                is_active=True,
            )
        )

    return ExternalImportResult(
        store_name=store_name,
        total_external_medications=len(records),
        new_medications_to_add=new_medications,
        matched_medications=matched_count,
    )
