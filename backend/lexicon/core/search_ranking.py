"""
Relevance scoring for search results.

Rules are ordered by priority; the rule at index i is worth (len(RULES) - i) ** 2
and an entry scores the sum of every rule it matches.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

from ..models import Entry

FieldValue = Union[str, Sequence[str], None]


# ---------- Matchers ----------


def exact_match(field: str, search: str) -> bool:
    return field.lower() == search.lower()


def starts_with(field: str, search: str) -> bool:
    return field.lower().startswith(search.lower())


def contains_word(field: str, search: str) -> bool:
    return re.search(rf"\b{re.escape(search)}\b", field, re.IGNORECASE) is not None


def contains_substring(field: str, search: str) -> bool:
    return search.lower() in field.lower()


# ---------- Field getters ----------


def get_primary_field(entry: Entry) -> FieldValue:
    return entry.primary_text or None


def get_definition(entry: Entry) -> FieldValue:
    if entry.type in ("word", "phrase"):
        return entry.definition
    return None


def get_tags(entry: Entry) -> FieldValue:
    return entry.tag_names


def get_notes(entry: Entry) -> FieldValue:
    return entry.notes


def get_quote_source(entry: Entry) -> FieldValue:
    if entry.type == "quote":
        return entry.source
    return None


@dataclass(frozen=True)
class Rule:
    name: str
    getter: Callable[[Entry], FieldValue]
    matcher: Callable[[str, str], bool]


RULES: List[Rule] = [
    Rule("primary-exact", get_primary_field, exact_match),
    Rule("primary-startsWith", get_primary_field, starts_with),
    Rule("primary-containsWord", get_primary_field, contains_word),
    Rule("primary-containsSubString", get_primary_field, contains_substring),
    Rule("definition-containsWord", get_definition, contains_word),
    Rule("tags-containsSubString", get_tags, contains_substring),
    Rule("definition-containsSubString", get_definition, contains_substring),
    Rule("notes-containsSubString", get_notes, contains_substring),
    Rule("quoteSource-containsSubString", get_quote_source, contains_substring),
]


def rule_score(index: int) -> int:
    return (len(RULES) - index) ** 2


def _rule_matches(rule: Rule, entry: Entry, search: str) -> bool:
    value = rule.getter(entry)
    if value is None:
        return False
    if isinstance(value, str):
        return rule.matcher(value.lower(), search)
    return any(v and rule.matcher(v.lower(), search) for v in value)


def _normalize(search: Optional[str]) -> str:
    return (search or "").strip().lower()


def rank_entry(entry: Entry, search: Optional[str]) -> int:
    search = _normalize(search)
    if not search:
        return 0
    return sum(
        rule_score(i) for i, rule in enumerate(RULES) if _rule_matches(rule, entry, search)
    )


def max_possible_score() -> int:
    return sum(rule_score(i) for i in range(len(RULES)))


def score_breakdown(entry: Entry, search: Optional[str]) -> list[dict]:
    """Per-rule view of rank_entry, for debugging relevance."""
    search = _normalize(search)
    if not search:
        return []
    out = []
    for i, rule in enumerate(RULES):
        matched = _rule_matches(rule, entry, search)
        out.append({"rule": rule.name, "score": rule_score(i) if matched else 0, "matched": matched})
    return out
