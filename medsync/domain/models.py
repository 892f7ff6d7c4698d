"""
Domain models for medication reconciliation.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation and are frozen so a sync result can be shared
freely once it has been built.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

UNKNOWN_DOSAGE = "Unknown dosage"
DEFAULT_STORE_NAME = "Apple Health"
DEFAULT_IMPORTED_FREQUENCY = "As prescribed"
DEFAULT_IMPORT_NOTE = f"Synced from {DEFAULT_STORE_NAME}"


class MatchType(str, Enum):
    """How an app medication was matched against the external store."""

    NAME_AND_DOSAGE = "nameAndDosage"
    NAME_ONLY = "nameOnly"


class Medication(BaseModel):
    """Medication tracked by the app for the current user."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Identifier, present once persisted")
    user_id: str | None = None
    name: str
    dosage: str = Field(description='Free-text dosage, e.g. "50mg"')
    frequency: str = ""
    timing: str | None = None
    route: str | None = None
    laterality: str | None = None
    duration: str | None = None
    instructions: str | None = None
    full_instructions: str | None = None
    is_active: bool = True
    discontinuation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    discontinued_date: datetime | None = None

    @property
    def is_currently_active(self) -> bool:
        """Active and not discontinued as of now."""
        if not self.is_active:
            return False
        if self.discontinued_date is None:
            return True

        discontinued = self.discontinued_date
        if discontinued.tzinfo is None:
            discontinued = discontinued.replace(tzinfo=UTC)
        return discontinued > datetime.now(UTC)


class MedicationDoseRecord(BaseModel):
    """One administration event or clinical statement read from the external store."""

    model_config = ConfigDict(frozen=True)

    name: str
    dosage: str
    date_taken: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ExternalMedication(BaseModel):
    """A medication entry as the external health store describes it."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    brand_name: str | None = None
    generic_name: str | None = None
    medication_identifier: str | None = None
    dosage_form_code: str | None = None
    strength: str | None = Field(None, description="Strength quantity rendered as text")
    dosage_string: str | None = None

    @computed_field(return_type=str)
    def preferred_name(self) -> str:
        """Brand name first, then generic name, then the display name."""
        return self.brand_name or self.generic_name or self.display_name

    @computed_field(return_type=str)
    def effective_dosage(self) -> str:
        if self.dosage_string is not None:
            return self.dosage_string
        if self.strength is not None:
            return self.strength
        return UNKNOWN_DOSAGE

    def to_dose_record(self, date_taken: datetime | None = None) -> MedicationDoseRecord:
        """Convert to the dose record shape the reconciliation engine consumes."""
        return MedicationDoseRecord(
            name=self.preferred_name,
            dosage=self.effective_dosage,
            date_taken=date_taken or datetime.now(UTC),
        )


class MedicationMatch(BaseModel):
    """An app medication paired with the external records that corroborate it."""

    model_config = ConfigDict(frozen=True)

    app_medication: Medication
    external_records: list[MedicationDoseRecord] = Field(default_factory=list)
    match_type: MatchType


class MedicationSyncResult(BaseModel):
    """Report produced by one two-way sync."""

    model_config = ConfigDict(frozen=True)

    matched_medications: list[MedicationMatch] = Field(default_factory=list)
    unmatched_health_records: list[MedicationDoseRecord] = Field(default_factory=list)
    medications_to_write_to_external_store: list[Medication] = Field(default_factory=list)
    external_write_success: bool = False

    @computed_field(return_type=str)
    def summary(self) -> str:
        return (
            f"Matched: {len(self.matched_medications)}, "
            f"New from External: {len(self.unmatched_health_records)}, "
            f"Written to External: {len(self.medications_to_write_to_external_store)}"
        )


class ExternalImportResult(BaseModel):
    """Outcome of pulling medications from the external store into the app."""

    model_config = ConfigDict(frozen=True)

    store_name: str = DEFAULT_STORE_NAME
    total_external_medications: int = Field(ge=0)
    new_medications_to_add: list[Medication] = Field(default_factory=list)
    matched_medications: int = Field(default=0, ge=0)

    @computed_field(return_type=str)
    def summary(self) -> str:
        return (
            f"Found {self.total_external_medications} medications in {self.store_name}. "
            f"{len(self.new_medications_to_add)} new, "
            f"{self.matched_medications} already in app."
        )
