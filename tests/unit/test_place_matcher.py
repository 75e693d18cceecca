import pytest

from placecheck.core.place_matcher import (
    address_similarity,
    build_search_query,
    calculate_match_score,
    find_best_match,
    name_similarity,
    normalize_name,
    type_similarity,
)
from placecheck.core.schemas import CandidateEntity, DiscoveredPlace


def test_build_search_query_appends_address_and_type():
    place = DiscoveredPlace(name="Le Comptoir", address="9 Carrefour de l'Odéon", type="restaurant")
    assert build_search_query(place, "Paris") == "Le Comptoir Paris 9 Carrefour de l'Odéon restaurant"


def test_build_search_query_skips_address_naming_the_city():
    place = DiscoveredPlace(name="Louvre", address="Rue de Rivoli, Paris")
    assert build_search_query(place, "Paris") == "Louvre Paris"


def test_normalize_name():
    assert normalize_name("  Eiffel Tower - Official!  ") == "eiffel tower official"


def test_name_similarity_levels():
    assert name_similarity("Eiffel Tower", "eiffel tower") == 1.0
    assert name_similarity("Eiffel Tower", "Eiffel Tower - Official") == 0.9
    assert name_similarity("Cafe de Flore", "Le Cafe Flore Paris") == 0.5
    assert name_similarity("Louvre", "Orsay") == 0.0


def test_name_similarity_counts_repeated_words_once():
    # Distinct common words {bar} over the larger distinct word set
    assert name_similarity("bar bar", "bar cafe") == 0.5
    assert name_similarity("bar bar", "bar cafe") < name_similarity("Eiffel Tower", "Eiffel Tower - Official")


def test_name_similarity_empty_after_normalization():
    assert name_similarity("!!!", "Louvre") == 0.0


def test_address_similarity():
    assert address_similarity("Rue de Rivoli", "Rue de Rivoli, 75001 Paris") == 1.0
    assert address_similarity("5 Avenue Anatole", "Champ de Mars, 5 Av. Anatole France") == 0.8
    assert address_similarity("Place de la Concorde", "12 Rue Royale") == 0.3


@pytest.mark.parametrize(
    "wanted, types, expected",
    [
        ("tourist attraction", ["tourist_attraction"], 1.0),
        ("museum", ["art_museum", "point_of_interest"], 0.8),
        ("park", ["restaurant", "food"], 0.3),
    ],
)
def test_type_similarity(wanted, types, expected):
    assert type_similarity(wanted, types) == expected


def test_eiffel_tower_official_scores_above_threshold(eiffel_candidate):
    discovered = DiscoveredPlace(name="Eiffel Tower", type="tourist_attraction")

    score = calculate_match_score(discovered, eiffel_candidate, "Paris")

    assert score.name == 0.9
    assert score.address == 0.5
    assert score.city == 1.0
    assert score.type == 1.0
    assert score.status == 1.0
    assert score.total == pytest.approx(0.85)


def test_neutral_components_land_exactly_on_half():
    discovered = DiscoveredPlace(name="Nowhere Bar", address="1 Rue Mercière", type="bar")
    candidate = CandidateEntity(
        place_id="x",
        name="Something Else",
        formatted_address="1 Rue Mercière, 69002 Lyon, France",
        types=["bar"],
        business_status="OPERATIONAL",
    )

    score = calculate_match_score(discovered, candidate, "Lyon")

    # Everything but the name matches
    assert score.name == 0.0
    assert score.total == 0.5


def test_find_best_match_keeps_first_on_tie():
    discovered = DiscoveredPlace(name="Louvre")
    first = CandidateEntity(place_id="a", name="Louvre", business_status="OPERATIONAL")
    second = CandidateEntity(place_id="b", name="Louvre", business_status="OPERATIONAL")

    candidate, score = find_best_match(discovered, [first, second], "Paris")

    assert candidate.place_id == "a"
    assert score.name == 1.0


def test_find_best_match_picks_highest(eiffel_candidate):
    discovered = DiscoveredPlace(name="Eiffel Tower")
    decoy = CandidateEntity(place_id="decoy", name="Tower Bridge", business_status="CLOSED_PERMANENTLY")

    candidate, _ = find_best_match(discovered, [decoy, eiffel_candidate], "Paris")

    assert candidate.place_id == "place-eiffel"


def test_find_best_match_no_candidates():
    assert find_best_match(DiscoveredPlace(name="Louvre"), [], "Paris") is None
