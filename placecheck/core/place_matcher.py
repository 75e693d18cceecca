"""
Multi-factor matching between a discovered place and search candidates.

Each candidate gets five component scores combined with fixed weights; the
highest total wins and ties go to the candidate the provider listed first.
"""

import re

from placecheck.core.schemas import CandidateEntity, DiscoveredPlace, MatchScore

MATCH_WEIGHTS = {
    "name": 0.5,
    "address": 0.2,
    "city": 0.1,
    "type": 0.1,
    "status": 0.1,
}

# Score used when one side has nothing to compare
NEUTRAL_SCORE = 0.5

OPERATIONAL_STATUS = "OPERATIONAL"

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_TYPE_SEPARATORS = re.compile(r"[_\s]+")
_NUMBER = re.compile(r"\d+")


def build_search_query(place: DiscoveredPlace, city: str) -> str:
    """
    Build the text search query for a discovered place.

    Args:
        place: The discovered place
        city: City/locality the place should be in

    Returns:
        "<name> <city>[ <address>][ <type>]"
    """
    query = f"{place.name} {city}"

    # Skip the address when it already names the city
    if place.address and city not in place.address:
        query += f" {place.address}"

    if place.type:
        query += f" {place.type}"

    return query


def normalize_name(name: str) -> str:
    name = _PUNCTUATION.sub("", name.lower())
    return _WHITESPACE.sub(" ", name).strip()


def name_similarity(name1: str, name2: str) -> float:
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if not n1 or not n2:
        return 0.0

    if n1 == n2:
        return 1.0

    if n1 in n2 or n2 in n1:
        return 0.9

    words1 = set(n1.split(" "))
    words2 = set(n2.split(" "))
    overlap = len(words1 & words2)
    return overlap / max(len(words1), len(words2))


def address_similarity(address1: str, address2: str) -> float:
    a1 = address1.lower()
    a2 = address2.lower()

    if a1 in a2 or a2 in a1:
        return 1.0

    # Street numbers
    num1 = _NUMBER.search(address1)
    num2 = _NUMBER.search(address2)
    if num1 and num2 and num1.group() == num2.group():
        return 0.8

    return 0.3


def city_similarity(formatted_address: str | None, city: str) -> float:
    if formatted_address and city.lower() in formatted_address.lower():
        return 1.0
    return 0.5


def _normalize_type(value: str) -> str:
    return _TYPE_SEPARATORS.sub("", value.lower())


def type_similarity(discovered_type: str, candidate_types: list[str]) -> float:
    wanted = _normalize_type(discovered_type)

    for candidate_type in candidate_types:
        found = _normalize_type(candidate_type)
        if wanted == found:
            return 1.0
        if wanted in found or found in wanted:
            return 0.8

    return 0.3


def calculate_match_score(
    discovered: DiscoveredPlace, candidate: CandidateEntity, city: str
) -> MatchScore:
    """
    Score how well a candidate matches the discovered place.

    Args:
        discovered: The place suggested upstream
        candidate: One search result
        city: City the place should be in

    Returns:
        MatchScore with component scores and their weighted total
    """
    if discovered.address and candidate.formatted_address:
        address = address_similarity(discovered.address, candidate.formatted_address)
    else:
        address = NEUTRAL_SCORE

    if discovered.type and candidate.types:
        type_score = type_similarity(discovered.type, candidate.types)
    else:
        type_score = NEUTRAL_SCORE

    score = MatchScore(
        name=name_similarity(discovered.name, candidate.name),
        address=address,
        city=city_similarity(candidate.formatted_address, city),
        type=type_score,
        status=1.0 if candidate.business_status == OPERATIONAL_STATUS else 0.0,
    )

    total = sum(getattr(score, field) * weight for field, weight in MATCH_WEIGHTS.items())
    # Rounded to 6 places: 0.2 + 0.1 + 0.1 + 0.1 must land exactly on 0.5
    score.total = round(total, 6)
    return score


def find_best_match(
    discovered: DiscoveredPlace, candidates: list[CandidateEntity], city: str
) -> tuple[CandidateEntity, MatchScore] | None:
    """
    Pick the highest-scoring candidate.

    Returns:
        (candidate, score) for the best candidate, or None if there are none
    """
    best: tuple[CandidateEntity, MatchScore] | None = None
    for candidate in candidates:
        score = calculate_match_score(discovered, candidate, city)
        # Strict comparison keeps the earliest candidate on ties
        if best is None or score.total > best[1].total:
            best = (candidate, score)
    return best
