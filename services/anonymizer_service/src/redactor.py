"""
Span-based masking of provider-detected entities.

Offsets and lengths coming from the language service are UTF-16 code units,
so every slice here happens on the UTF-16-LE encoding of the text rather than
on the Python str (which is indexed by code point).
"""
import re
from typing import Any, FrozenSet, Iterable, List, Mapping, NamedTuple, Optional, Sequence

from .schemas import RedactionPolicy, RedactionResult

MASK_CHAR = "*"

DATE_CATEGORY = "DateTime"
PERSON_CATEGORY = "Person"
SUPPLEMENTARY_CATEGORIES = frozenset({"Location", "Organization"})

_UTF16 = "utf-16-le"
_UNIT = 2  # bytes per UTF-16 code unit

_POSSESSIVE_RE = re.compile(r"['’]s\b")
_WHITESPACE_RE = re.compile(r"\s+")


class Span(NamedTuple):
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


# -----------------------
# Allow-list matching
# -----------------------

def normalize_name(value: str) -> str:
    # emma's -> emma, "Dr. Smith" -> "dr smith"
    lowered = _POSSESSIVE_RE.sub("", value.lower())
    kept = "".join(ch for ch in lowered if ch.isalpha() or ch.isnumeric() or ch.isspace())
    return kept.strip()


def build_allow_set(names: Iterable[Any]) -> FrozenSet[str]:
    normalized = (normalize_name(str(n)) for n in names)
    return frozenset(n for n in normalized if n)


def is_allowed_person(text: Any, allow_set: FrozenSet[str]) -> bool:
    if not text or not allow_set:
        return False
    norm = normalize_name(str(text))
    if not norm:
        return False
    if norm in allow_set:
        return True
    # "david smith" is allowed when either "david" or "smith" is listed
    return any(tok in allow_set for tok in _WHITESPACE_RE.split(norm))


# -----------------------
# Spans
# -----------------------

def utf16_length(text: str) -> int:
    return len(text.encode(_UTF16, "surrogatepass")) // _UNIT


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def entity_span(entity: Mapping[str, Any], text_length: int) -> Optional[Span]:
    """Span covered by an entity, or None when offset/length are unusable."""
    if not isinstance(entity, Mapping):
        return None
    offset, length = entity.get("offset"), entity.get("length")
    if not (_is_index(offset) and _is_index(length)):
        return None
    if offset + length > text_length:
        return None
    return Span(offset, length)


def _category(entity: Mapping[str, Any]) -> str:
    return str(entity.get("category") or "")


def select_spans(
    text_length: int,
    primary_entities: Sequence[Mapping[str, Any]],
    policy: RedactionPolicy,
    supplementary_entities: Optional[Sequence[Mapping[str, Any]]] = None,
) -> List[Span]:
    allow_set = build_allow_set(policy.allow_names)
    spans: List[Span] = []

    for e in primary_entities:
        span = entity_span(e, text_length)
        if span is None:
            continue
        cat = _category(e)
        if policy.keep_dates and cat == DATE_CATEGORY:
            continue
        if cat == PERSON_CATEGORY and is_allowed_person(e.get("text"), allow_set):
            continue
        spans.append(span)

    if not policy.redact_locations_and_orgs:
        return spans

    for e in supplementary_entities or ():
        span = entity_span(e, text_length)
        if span is None:
            continue
        cat = _category(e)
        if cat == PERSON_CATEGORY:
            if not policy.redact_supplementary_persons:
                continue
            if is_allowed_person(e.get("text"), allow_set):
                continue
        elif cat not in SUPPLEMENTARY_CATEGORIES:
            continue
        spans.append(span)

    return spans


def merge_spans(spans: Iterable[Span]) -> List[Span]:
    """Merge overlapping and touching spans into disjoint, non-adjacent runs."""
    merged: List[Span] = []
    for s in sorted(spans, key=lambda s: s.start):
        if merged and s.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Span(last.start, max(last.end, s.end) - last.start)
        else:
            merged.append(s)
    return merged


# -----------------------
# Masking
# -----------------------

def mask_spans(text: str, spans: Iterable[Span], mask_char: str = MASK_CHAR) -> str:
    merged = merge_spans(spans)
    if not merged:
        return text

    raw = text.encode(_UTF16, "surrogatepass")
    mask_unit = mask_char.encode(_UTF16)
    if len(mask_unit) != _UNIT:
        raise ValueError("mask_char must be a single UTF-16 code unit")

    out = bytearray()
    cursor = 0
    for s in merged:
        out += raw[cursor * _UNIT:s.start * _UNIT]
        out += mask_unit * max(0, s.end - s.start)
        cursor = s.end
    out += raw[cursor * _UNIT:]
    return out.decode(_UTF16, "surrogatepass")


def compute_masked_text(
    text: str,
    primary_entities: Sequence[Mapping[str, Any]],
    policy: RedactionPolicy,
    supplementary_entities: Optional[Sequence[Mapping[str, Any]]] = None,
) -> RedactionResult:
    """
    Mask every entity the policy does not exempt.

    The returned entity list is the primary list as detected, unfiltered, so
    callers can show what the provider found next to what was masked.
    """
    spans = merge_spans(select_spans(utf16_length(text), primary_entities, policy, supplementary_entities))
    return RedactionResult(
        redacted_text=mask_spans(text, spans),
        entities=list(primary_entities),
        masked_spans=len(spans),
    )
