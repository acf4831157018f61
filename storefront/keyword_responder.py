from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .models import KeywordRecord

DEFAULT_FALLBACK = "I'm sorry, I couldn't process your message. Please try again."


def _scan_order(records: Iterable[KeywordRecord]) -> list[KeywordRecord]:
    # sorted() is stable, so equal priorities keep their input order
    active = [r for r in records if r.isActive]
    return sorted(active, key=lambda r: r.priority, reverse=True)


def find_match(message: str, records: Sequence[KeywordRecord]) -> Optional[KeywordRecord]:
    """Return the first active record whose keyword or a variation occurs in
    ``message`` (case-insensitive substring), scanning by priority descending.

    Pure function: ``records`` is never mutated.
    """
    text = (message or "").lower()
    if not text:
        return None
    for record in _scan_order(records):
        for phrase in record.phrases():
            if phrase.lower() in text:
                return record
    return None


def respond(message: str, records: Sequence[KeywordRecord], fallback: str = DEFAULT_FALLBACK) -> str:
    match = find_match(message, records)
    return match.response if match else fallback
