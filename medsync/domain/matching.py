"""
Matching rules used to decide whether two medication entries are the same.

Names are compared after a light canonicalisation and dosages are compared
numerically within a tolerance band. There is no unit conversion or alias
table: "500mg" vs "0.5g" and "mg" vs "milligrams" do not match.
"""

import re
from typing import NamedTuple

DEFAULT_TOLERANCE_RATIO = 0.2

# First "<number> <unit>" pair, e.g. "50mg", "2.5 ml", "1 tablet"
_DOSAGE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]+)", re.ASCII)
_STRIPPED_CHARACTERS = (" ", "-", ".")


class DosageComponents(NamedTuple):
    """Numeric quantity and unit token extracted from a dosage string."""

    value: float | None
    unit: str | None


def normalize_medication_name(name: str) -> str:
    """Lower-case and drop spaces, hyphens and periods."""
    normalized = name.lower()
    for character in _STRIPPED_CHARACTERS:
        normalized = normalized.replace(character, "")
    return normalized


def parse_dosage(dosage: str) -> DosageComponents:
    """
    Extract the first numeric quantity and unit from a free-text dosage.

    Only the first pair is used, so "1 tablet, 50mg" parses as (1.0, "tablet").
    Returns (None, None) when the text has no such pair.
    """
    match = _DOSAGE_PATTERN.search(dosage)
    if match is None:
        return DosageComponents(None, None)
    return DosageComponents(float(match.group(1)), match.group(2).lower())


def are_dosages_compatible(
    app_dosage: str,
    external_dosage: str,
    tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO,
) -> bool:
    """
    Decide whether two dosage strings denote the same treatment.

    Numeric dosages must share a unit and differ by at most
    ``app_value * tolerance_ratio`` (inclusive). A zero app value therefore
    requires exact equality. When either side has no numeric component the
    strings are compared after name-style normalisation, which is how
    descriptions like "as needed" match.
    """
    app = parse_dosage(app_dosage)
    external = parse_dosage(external_dosage)

    if app.value is not None and external.value is not None:
        tolerance = app.value * tolerance_ratio
        return abs(app.value - external.value) <= tolerance and app.unit == external.unit

    return normalize_medication_name(app_dosage) == normalize_medication_name(external_dosage)
