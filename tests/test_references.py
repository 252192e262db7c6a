from __future__ import annotations

from tracescope.references import extract_references, normalize_requirement_id, requirement_ids_match


def test_extract_references_is_strict_about_case_and_digits():
    assert extract_references("See REQ-001 and req-001 and REQ-1") == {"REQ-001"}


def test_extract_references_deduplicates():
    text = "REQ-002 REQ-003\n// REQ-002 again"
    assert extract_references(text) == {"REQ-002", "REQ-003"}


def test_extract_references_ignores_longer_numbers():
    assert extract_references("REQ-1234 is not a three digit id") == set()


def test_extract_references_empty_text():
    assert extract_references("") == set()


def test_normalize_pads_to_three_digits():
    assert normalize_requirement_id("feature/req-7-thing") == "REQ-007"
    assert normalize_requirement_id("REQ-042-hotfix") == "REQ-042"
    assert normalize_requirement_id("bugfix/Req-123") == "REQ-123"


def test_normalize_without_id():
    assert normalize_requirement_id("main") is None
    assert normalize_requirement_id("") is None


def test_ids_match_exact_and_case_insensitive():
    assert requirement_ids_match("REQ-044", "REQ-044")
    assert requirement_ids_match("REQ-044", "req-044")


def test_ids_match_bare_number():
    assert requirement_ids_match("REQ-044", "044")
    assert not requirement_ids_match("REQ-044", "045")


def test_ids_match_never_matches_empty():
    assert not requirement_ids_match("REQ-044", "")
    assert not requirement_ids_match("", "044")


def test_ids_match_suffix_limitation_is_preserved():
    # Short references match any ID with the same ending.
    assert requirement_ids_match("REQ-1044", "044")
