from __future__ import annotations

import re
from typing import Iterable, Optional, Set

from owner_lookup.models import ListingRecord, MatchCandidate, NormalizedAddress
from owner_lookup.normalize import (
    DIRECTIONALS,
    STREET_TYPES,
    normalize_ordinals,
)


NUMBER_SCORE = 50
STREET_SCORE = 30
WORD_SCORE = 5
MIN_SCORE = 50

_WORD_RE = re.compile(r"[a-z0-9]+")

STOP_WORDS: Set[str] = (
    set(STREET_TYPES)
    | set(STREET_TYPES.values())
    | set(DIRECTIONALS)
    | set(DIRECTIONALS.values())
    | {"apt", "unit"}
)


def _words(text: str) -> list:
    return _WORD_RE.findall(normalize_ordinals((text or "").lower()))


def score_candidate(query: NormalizedAddress, address: Optional[str]) -> int:
    """Additive overlap score of a stored address against the query.

    Returns 0 when the street number is absent or not present as a whole
    token; such rows are never candidates.
    """

    if not query.street_number or not address:
        return 0
    words = _words(address)
    if query.street_number not in words:
        return 0

    score = NUMBER_SCORE
    contracted = {STREET_TYPES.get(w, w) for w in words}
    if query.street_name and (query.street_name in words or query.street_name in contracted):
        score += STREET_SCORE

    skip = {query.street_number, query.street_name}
    counted: Set[str] = set()
    query_words = _words(query.raw)
    for word in query_words:
        if len(word) <= 2 or word in STOP_WORDS or word in skip or word in counted:
            continue
        if word in words:
            counted.add(word)
            score += WORD_SCORE
    return score


def score_record(query: NormalizedAddress, record: ListingRecord) -> Optional[MatchCandidate]:
    score = score_candidate(query, record.address)
    if score < MIN_SCORE:
        return None
    return MatchCandidate(record=record, score=score)


def select_best(candidates: Iterable[MatchCandidate]) -> Optional[MatchCandidate]:
    """Highest score wins; on a tie the earliest candidate is kept."""

    best: Optional[MatchCandidate] = None
    for cand in candidates:
        if cand.score < MIN_SCORE:
            continue
        if best is None or cand.score > best.score:
            best = cand
    return best
