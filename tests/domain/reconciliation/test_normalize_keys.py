from __future__ import annotations

import pytest

from larder.domain.reconciliation.normalize import (
    clean_text,
    dedupe_preserving_first,
    normalize_key,
    normalized_sorted,
    same_text,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("  Potato ", "potato"),
        ("STRASSE", "strasse"),
        ("Straße", "strasse"),
        ("", ""),
        ("   ", ""),
        (None, ""),
    ],
)
def test_normalize_key(value: str | None, expected: str) -> None:
    assert normalize_key(value) == expected


def test_same_text_ignores_case_and_padding() -> None:
    assert same_text(" Tomato", "tomato ")
    assert same_text(None, "  ")


def test_same_text_keeps_accents_distinct() -> None:
    assert not same_text("creme", "crème")


def test_clean_text_maps_blanks_to_none() -> None:
    assert clean_text("  basil ") == "basil"
    assert clean_text("   ") is None
    assert clean_text(None) is None


def test_dedupe_preserving_first_keeps_first_spelling() -> None:
    assert dedupe_preserving_first(["Spud", " spud", "", "Tater", "TATER"]) == ("Spud", "Tater")


def test_normalized_sorted_drops_blanks() -> None:
    assert normalized_sorted(["b", " A", "  "]) == ("a", "b")
