"""Source attribution helpers and the plan reliability heuristic."""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from field_trip_planner.schemas import SourceLink, SourceProvider

EMPTY_SCORE = 42
BASE_SCORE = 40
MAX_SCORE = 98

PROVIDER_WEIGHTS: Dict[SourceProvider, int] = {
    SourceProvider.AI_DISCOVERY: 20,
    SourceProvider.OPENTRIPMAP: 15,
    SourceProvider.ORS: 12,
    SourceProvider.WIKIDATA: 10,
    SourceProvider.GEONAMES: 6,
}
VERIFIED_BONUS = 8
SECURE_URL_BONUS = 6


def score_sources(sources: Iterable[SourceLink]) -> int:
    """Heuristic confidence in ``[0, 98]`` derived from source provenance only."""
    items = list(sources)
    if not items:
        return EMPTY_SCORE
    score = BASE_SCORE
    for source in items:
        score += PROVIDER_WEIGHTS.get(source.source, 0)
        if source.verified:
            score += VERIFIED_BONUS
        if source.url and source.url.lower().startswith("https://"):
            score += SECURE_URL_BONUS
    return max(0, min(MAX_SCORE, score))


def dedupe_sources(sources: Iterable[SourceLink]) -> List[SourceLink]:
    """Keep the first source for every ``(url, title)`` pair, preserving order."""
    seen: set[Tuple[Optional[str], str]] = set()
    unique: List[SourceLink] = []
    for source in sources:
        key = (source.url, source.title)
        if key in seen:
            continue
        seen.add(key)
        unique.append(source)
    return unique
