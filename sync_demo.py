"""
End-to-end demonstration of the medication sync pipeline.

This script runs:
1. Configuration loading
2. A two-way sync against a simulated health store
3. A second sync showing written medications now match
4. An import of store-only medications into the app
5. A sync with a store that cannot be read

Run with: uv run python sync_demo.py
"""

import asyncio

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.simulated.store import SimulatedHealthStore
from medsync.config import configure_logging, get_config, print_config_summary
from medsync.domain.models import ExternalMedication, Medication, MedicationSyncResult
from medsync.services.sync_service import MedicationSyncService

console = Console()

APP_MEDICATIONS = [
    Medication(id="med-1", name="Lisinopril", dosage="10mg", frequency="Once daily"),
    Medication(id="med-2", name="Aspirin", dosage="81mg", frequency="Once daily"),
    Medication(id="med-3", name="Metformin", dosage="500mg", frequency="Twice daily"),
    Medication(id="med-4", name="Albuterol", dosage="as needed", frequency="PRN"),
    Medication(
        id="med-5",
        name="Old Statin",
        dosage="20mg",
        frequency="Nightly",
        is_active=False,
        discontinuation_reason="Side effects",
    ),
]

STORE_MEDICATIONS = [
    ExternalMedication(display_name="lisinopril", dosage_string="10 mg"),
    ExternalMedication(display_name="Aspirin", dosage_string="325mg"),
    ExternalMedication(display_name="ALBUTEROL", dosage_string="As Needed"),
    ExternalMedication(display_name="Atorvastatin Calcium", generic_name="Atorvastatin"),
]


def print_sync_result(title: str, result: MedicationSyncResult) -> None:
    table = Table(title=title)
    table.add_column("Medication", style="cyan")
    table.add_column("Outcome", style="magenta")
    table.add_column("Detail")

    for match in result.matched_medications:
        table.add_row(
            match.app_medication.name,
            f"matched ({match.match_type.value})",
            f"{len(match.external_records)} compatible record(s)",
        )
    for medication in result.medications_to_write_to_external_store:
        table.add_row(medication.name, "written to store", medication.dosage)
    for record in result.unmatched_health_records:
        table.add_row(record.name, "unmatched store record", record.dosage)

    console.print(table)
    console.print(f"Summary: {result.summary}")
    style = "green" if result.external_write_success else "red"
    console.print(f"Write success: {result.external_write_success}", style=style)


async def run_demo() -> None:
    config = get_config()
    configure_logging(config.logging)

    console.print(Panel("Medication Sync Demo", style="bold blue"))
    print_config_summary()

    store = SimulatedHealthStore(STORE_MEDICATIONS, store_name=config.sync.store_name)
    service = MedicationSyncService(store, config=config.sync)

    console.print(Panel("First two-way sync", style="blue"))
    first = await service.perform_two_way_sync(APP_MEDICATIONS)
    print_sync_result("First sync", first)

    console.print(Panel("Second two-way sync", style="blue"))
    second = await service.perform_two_way_sync(APP_MEDICATIONS)
    print_sync_result("Second sync", second)

    console.print(Panel("Import from store", style="blue"))
    imported = await service.import_from_external_store(APP_MEDICATIONS)
    for medication in imported.new_medications_to_add:
        console.print(f"  New: {medication.name} ({medication.dosage})", style="green")
    console.print(imported.summary)

    console.print(Panel("Sync with unreachable store", style="blue"))
    broken_store = SimulatedHealthStore(STORE_MEDICATIONS, failure_rate=1.0)
    fetch_errors: list[Exception] = []
    degraded_service = MedicationSyncService(
        broken_store, config=config.sync, on_fetch_error=fetch_errors.append
    )
    degraded = await degraded_service.perform_two_way_sync(APP_MEDICATIONS)
    print_sync_result("Degraded sync", degraded)
    console.print(f"Fetch errors observed: {len(fetch_errors)}", style="yellow")


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\nDemo stopped by user", style="yellow")
