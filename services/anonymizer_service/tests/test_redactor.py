import pytest

from services.anonymizer_service.src.redactor import (
    Span,
    build_allow_set,
    compute_masked_text,
    entity_span,
    is_allowed_person,
    mask_spans,
    merge_spans,
    normalize_name,
    utf16_length,
)
from services.anonymizer_service.src.schemas import RedactionPolicy


def _entity(category, offset, length, text=""):
    return {"category": category, "offset": offset, "length": length, "text": text, "confidenceScore": 0.9}


def _policy(**kwargs):
    return RedactionPolicy(**kwargs)


# ── Merge ────────────────────────────────────────────────────────────

def test_merge_overlapping_matches_premerged_span():
    text = "abcdefghij"
    assert mask_spans(text, [Span(0, 5), Span(3, 4)]) == mask_spans(text, [Span(0, 7)]) == "*******hij"


def test_touching_spans_merge_into_one_run():
    assert merge_spans([Span(0, 3), Span(3, 2)]) == [Span(0, 5)]
    assert mask_spans("abcdefg", [Span(0, 3), Span(3, 2)]) == "*****fg"


def test_one_char_gap_keeps_runs_separate():
    assert merge_spans([Span(0, 3), Span(4, 2)]) == [Span(0, 3), Span(4, 2)]
    assert mask_spans("abcdefg", [Span(4, 2), Span(0, 3)]) == "***d**g"


def test_contained_span_does_not_shrink_run():
    assert merge_spans([Span(2, 10), Span(4, 1)]) == [Span(2, 10)]


# ── Masking ──────────────────────────────────────────────────────────

def test_no_entities_returns_text_unchanged():
    text = "Nothing to hide here."
    result = compute_masked_text(text, [], _policy())
    assert result.redacted_text == text
    assert result.entities == []


def test_empty_text_is_legal():
    assert compute_masked_text("", [], _policy()).redacted_text == ""


def test_surrogate_pairs_use_utf16_offsets():
    # "😀" is two UTF-16 code units, so "Ann" starts at offset 3
    text = "😀 Ann met Bob"
    entities = [_entity("Person", 3, 3, "Ann"), _entity("Person", 11, 3, "Bob")]
    result = compute_masked_text(text, entities, _policy())
    assert result.redacted_text == "😀 *** met ***"


def test_masking_an_emoji_uses_one_star_per_code_unit():
    text = "hi 😀!"
    result = compute_masked_text(text, [_entity("Emoji", 3, 2)], _policy())
    assert result.redacted_text == "hi **!"
    assert utf16_length(result.redacted_text) == utf16_length(text)


@pytest.mark.parametrize("text", [
    "Call John Smith at 555-1234 on 2024-01-01.",
    "Née à Zürich · 🏥 ward 7, Dr. Øster",
    "x",
])
def test_length_is_preserved(text):
    n = utf16_length(text)
    entities = [_entity("Person", 0, n), _entity("Location", 0, 1), _entity("PhoneNumber", n - 1, 1)]
    result = compute_masked_text(text, entities, _policy(keep_dates=False))
    assert utf16_length(result.redacted_text) == n


def test_rerun_is_stable():
    text = "Call John Smith at 555-1234."
    entities = [_entity("Person", 5, 10, "John Smith"), _entity("PhoneNumber", 19, 8)]
    first = compute_masked_text(text, entities, _policy())
    second = compute_masked_text(text, entities, _policy())
    assert first == second


# ── Malformed entities ───────────────────────────────────────────────

@pytest.mark.parametrize("entity", [
    {"category": "Person", "offset": "abc", "length": 3},
    {"category": "Person", "offset": 0},
    {"category": "Person", "length": 3},
    {"category": "Person", "offset": -1, "length": 3},
    {"category": "Person", "offset": 0, "length": 2.5},
    {"category": "Person", "offset": True, "length": 3},
    {"category": "Person", "offset": 8, "length": 10},
    "not-a-mapping",
])
def test_malformed_entity_contributes_no_span(entity):
    text = "Hello Ann"
    result = compute_masked_text(text, [entity], _policy())
    assert result.redacted_text == text
    assert result.entities == [entity]


def test_entity_span_bounds():
    assert entity_span({"offset": 2, "length": 3}, 5) == Span(2, 3)
    assert entity_span({"offset": 2, "length": 4}, 5) is None


# ── Policy ───────────────────────────────────────────────────────────

def test_dates_kept_and_locations_masked():
    text = "Born 1990-01-01 in London"
    primary = [_entity("DateTime", 5, 10, "1990-01-01")]
    supplementary = [_entity("Location", 19, 6, "London")]
    policy = _policy(keep_dates=True, redact_locations_and_orgs=True)
    result = compute_masked_text(text, primary, policy, supplementary)
    assert result.redacted_text == "Born 1990-01-01 in ******"


def test_dates_masked_when_not_kept():
    text = "Born 1990-01-01 in London"
    primary = [_entity("DateTime", 5, 10), _entity("Location", 19, 6)]
    result = compute_masked_text(text, primary, _policy(keep_dates=False))
    assert result.redacted_text == "Born ********** in ******"


def test_primary_location_is_masked_by_default():
    text = "Born 1990-01-01 in London"
    primary = [_entity("DateTime", 5, 10), _entity("Location", 19, 6)]
    result = compute_masked_text(text, primary, _policy(keep_dates=True, redact_locations_and_orgs=True))
    assert result.redacted_text == "Born 1990-01-01 in ******"


def test_end_to_end_example():
    text = "Call John Smith at 555-1234 on 2024-01-01."
    primary = [
        _entity("Person", 5, 10, "John Smith"),
        _entity("PhoneNumber", 19, 8, "555-1234"),
        _entity("DateTime", 31, 10, "2024-01-01"),
    ]
    result = compute_masked_text(text, primary, _policy(keep_dates=True, allow_names=[]))
    assert result.redacted_text == "Call ********** at ******** on 2024-01-01."
    assert result.entities == primary


def test_allow_listed_person_with_possessive_is_kept():
    text = "Dr. Emma's notes"
    result = compute_masked_text(text, [_entity("Person", 0, 10, "Dr. Emma's")], _policy(allow_names=["emma"]))
    assert result.redacted_text == text


def test_allow_list_token_match_exempts_any_mention():
    text = "John Smith and Mary Smith"
    primary = [_entity("Person", 0, 10, "John Smith"), _entity("Person", 15, 10, "Mary Smith")]
    result = compute_masked_text(text, primary, _policy(allow_names=["Smith"]))
    assert result.redacted_text == text


def test_allow_list_only_applies_to_person():
    text = "Emma Street clinic"
    result = compute_masked_text(text, [_entity("Address", 0, 11, "Emma Street")], _policy(allow_names=["emma"]))
    assert result.redacted_text == "*********** clinic"


def test_supplementary_ignored_when_disabled():
    text = "Seen at St Mary ward"
    supplementary = [_entity("Organization", 8, 7, "St Mary")]
    result = compute_masked_text(text, [], _policy(redact_locations_and_orgs=False), supplementary)
    assert result.redacted_text == text


def test_supplementary_person_requires_its_own_flag():
    text = "Ann saw Bob"
    supplementary = [_entity("Person", 0, 3, "Ann"), _entity("Person", 8, 3, "Bob")]

    kept = compute_masked_text(text, [], _policy(), supplementary)
    assert kept.redacted_text == text

    masked = compute_masked_text(
        text, [], _policy(redact_supplementary_persons=True, allow_names=["bob"]), supplementary
    )
    assert masked.redacted_text == "*** saw Bob"


def test_supplementary_other_categories_are_ignored():
    text = "Takes 20 mg daily"
    supplementary = [_entity("Quantity", 6, 5, "20 mg")]
    assert compute_masked_text(text, [], _policy(), supplementary).redacted_text == text


def test_result_entities_are_primary_only():
    text = "Ann in Paris"
    primary = [_entity("Person", 0, 3, "Ann")]
    supplementary = [_entity("Location", 7, 5, "Paris")]
    result = compute_masked_text(text, primary, _policy(), supplementary)
    assert result.redacted_text == "*** in *****"
    assert result.entities == primary


# ── Allow-list normalization ─────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("Emma's", "emma"),
    ("EMMA’S", "emma"),
    ("Dr. Emma", "dr emma"),
    ("  O'Neil-Smith  ", "oneilsmith"),
    ("José", "josé"),
    ("Agent 47", "agent 47"),
    ("...", ""),
])
def test_normalize_name(raw, expected):
    assert normalize_name(raw) == expected


def test_empty_allow_entries_never_match():
    allow = build_allow_set(["", "  ", "!!!", "'s"])
    assert allow == frozenset()
    assert not is_allowed_person("Anyone", allow)


def test_blank_person_text_never_matches():
    allow = build_allow_set(["emma"])
    assert not is_allowed_person("", allow)
    assert not is_allowed_person("?!", allow)
    assert not is_allowed_person(None, allow)


def test_full_name_match():
    allow = build_allow_set(["David Smith"])
    assert is_allowed_person("david smith", allow)
    assert not is_allowed_person("David", allow)


def test_masked_span_count_is_after_merging():
    text = "abcdefghij"
    entities = [_entity("Person", 0, 5), _entity("Person", 3, 4), _entity("PhoneNumber", 8, 2)]
    result = compute_masked_text(text, entities, _policy())
    assert result.redacted_text == "*******h**"
    assert result.masked_spans == 2
