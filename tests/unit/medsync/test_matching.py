"""
Tests for the name and dosage matching rules in `medsync/domain/matching.py`.

Covers:
- Name normalization (equivalence classes and idempotence)
- Dosage parsing (first numeric+unit pair, null result on no match)
- Dosage compatibility (tolerance band, unit equality, text fallback)
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from medsync.domain.matching import (
    DosageComponents,
    are_dosages_compatible,
    normalize_medication_name,
    parse_dosage,
)

# Latin scripts keep case mapping well-behaved for the property tests
latin_text = st.text(alphabet=st.characters(max_codepoint=0x24F), max_size=40)


class TestNormalizeMedicationName:
    def test_equivalent_spellings_normalize_equal(self) -> None:
        assert (
            normalize_medication_name("Lisinopril-10")
            == normalize_medication_name("lisinopril 10")
            == normalize_medication_name("LISINOPRIL10")
        )

    def test_periods_are_removed(self) -> None:
        assert normalize_medication_name("Vit. B-12") == "vitb12"

    def test_other_punctuation_is_kept(self) -> None:
        assert normalize_medication_name("Co/Codamol") == "co/codamol"
        assert normalize_medication_name("Tylenol (Extra)") == "tylenol(extra)"

    def test_no_plural_or_diacritic_folding(self) -> None:
        assert normalize_medication_name("Vitamins") != normalize_medication_name("Vitamin")
        assert normalize_medication_name("Café") != normalize_medication_name("Cafe")

    @given(name=latin_text)
    def test_normalization_is_idempotent(self, name: str) -> None:
        once = normalize_medication_name(name)
        assert normalize_medication_name(once) == once

    @given(name=latin_text)
    def test_normalized_name_has_no_stripped_characters(self, name: str) -> None:
        normalized = normalize_medication_name(name)
        assert " " not in normalized
        assert "-" not in normalized
        assert "." not in normalized


class TestParseDosage:
    @pytest.mark.parametrize(
        "dosage,expected",
        [
            ("50mg", DosageComponents(50.0, "mg")),
            ("50 MG", DosageComponents(50.0, "mg")),
            ("2.5 ml", DosageComponents(2.5, "ml")),
            ("Take 100mcg daily", DosageComponents(100.0, "mcg")),
            ("1 tablet, 50mg", DosageComponents(1.0, "tablet")),
        ],
    )
    def test_extracts_first_value_and_unit(self, dosage: str, expected: DosageComponents) -> None:
        assert parse_dosage(dosage) == expected

    @pytest.mark.parametrize("dosage", ["as needed", "", "50", "mg 50", "Unknown dosage"])
    def test_returns_nulls_without_numeric_unit_pair(self, dosage: str) -> None:
        assert parse_dosage(dosage) == DosageComponents(None, None)

    @given(dosage=st.text(max_size=40))
    def test_parser_never_raises_and_pairs_value_with_unit(self, dosage: str) -> None:
        value, unit = parse_dosage(dosage)

        assert (value is None) == (unit is None)
        if unit is not None:
            assert unit == unit.lower()
            assert unit.isascii() and unit.isalpha()


class TestAreDosagesCompatible:
    def test_upper_tolerance_boundary_is_inclusive(self) -> None:
        assert are_dosages_compatible("100mg", "120mg")

    def test_beyond_tolerance_is_incompatible(self) -> None:
        assert not are_dosages_compatible("100mg", "121mg")

    def test_lower_tolerance_boundary_is_inclusive(self) -> None:
        assert are_dosages_compatible("100mg", "80mg")
        assert not are_dosages_compatible("100mg", "79mg")

    def test_tolerance_is_relative_to_app_dosage(self) -> None:
        # A gap of 25 is within 20% of 125 but not within 20% of 100
        assert are_dosages_compatible("125mg", "100mg")
        assert not are_dosages_compatible("100mg", "125mg")

    def test_unit_mismatch_is_incompatible(self) -> None:
        assert not are_dosages_compatible("100mg", "100mcg")

    def test_units_have_no_alias_table(self) -> None:
        assert not are_dosages_compatible("500mg", "0.5g")
        assert not are_dosages_compatible("5mg", "5 milligrams")

    def test_units_compare_case_insensitively(self) -> None:
        assert are_dosages_compatible("10MG", "10 mg")

    def test_zero_app_value_requires_exact_equality(self) -> None:
        assert are_dosages_compatible("0mg", "0 mg")
        assert not are_dosages_compatible("0mg", "0.1mg")

    def test_fallback_compares_normalized_text(self) -> None:
        assert are_dosages_compatible("as needed", "As Needed")
        assert are_dosages_compatible("as-needed", "As Needed.")
        assert not are_dosages_compatible("as needed", "daily")

    def test_fallback_applies_when_only_one_side_is_numeric(self) -> None:
        assert not are_dosages_compatible("50mg", "fifty mg")
        assert not are_dosages_compatible("Unknown dosage", "50mg")

    def test_custom_tolerance_ratio(self) -> None:
        assert are_dosages_compatible("100mg", "150mg", tolerance_ratio=0.5)
        assert not are_dosages_compatible("100mg", "101mg", tolerance_ratio=0.0)

    @given(value=st.integers(min_value=0, max_value=100_000))
    def test_identical_numeric_dosages_are_compatible(self, value: int) -> None:
        assert are_dosages_compatible(f"{value}mg", f"{value} MG")
