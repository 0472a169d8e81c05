from datetime import UTC, datetime, timedelta

from hostelkeep.algorithms import (
    character_bigrams,
    day_difference,
    dice_coefficient,
    location_similarity,
    text_similarity,
    time_proximity,
)

TIERS = [(1, 1.0), (3, 0.7), (7, 0.4)]


def test_character_bigrams_counts_repeats() -> None:
    bigrams = character_bigrams("aaaa")
    assert bigrams["aa"] == 3
    assert sum(bigrams.values()) == 3


def test_dice_coefficient_known_values() -> None:
    assert dice_coefficient("night", "nacht") == 0.25
    assert dice_coefficient("aaaa", "aa") == 0.5
    assert dice_coefficient("abc", "xyz") == 0.0


def test_dice_coefficient_identity_and_short_inputs() -> None:
    assert dice_coefficient("", "") == 1.0
    assert dice_coefficient("a", "a") == 1.0
    assert dice_coefficient("a", "b") == 0.0
    assert dice_coefficient("", "room") == 0.0


def test_dice_coefficient_ignores_whitespace() -> None:
    assert dice_coefficient("room 204", "room204") == 1.0
    assert dice_coefficient(" tap\tleak ", "tapleak") == 1.0


def test_dice_coefficient_is_symmetric() -> None:
    pairs = [
        ("Leaking tap in room 204", "Tap leaking in room 204"),
        ("wifi down", "WiFi is down again"),
        ("fan", "light"),
    ]
    for first, second in pairs:
        assert dice_coefficient(first, second) == dice_coefficient(second, first)


def test_text_similarity_is_case_insensitive() -> None:
    assert text_similarity("Leaking Tap", "leaking tap") == 1.0
    score = text_similarity("Leaking tap in room 204", "Tap leaking in room 204")
    assert abs(score - 32 / 36) < 1e-9


def test_location_similarity_sums_matching_weights() -> None:
    assert location_similarity([("A", "A", 0.4), ("B", "B", 0.3), ("101", "101", 0.3)]) == 1.0
    assert location_similarity([("A", "A", 0.4), ("B", "C", 0.3), ("101", "102", 0.3)]) == 0.4
    assert location_similarity([("A", "X", 0.4), ("B", "C", 0.3), ("101", "102", 0.3)]) == 0.0


def test_time_proximity_tiers() -> None:
    assert time_proximity(0.1, TIERS, 0.1) == 1.0
    assert time_proximity(1.0, TIERS, 0.1) == 1.0
    assert time_proximity(2.5, TIERS, 0.1) == 0.7
    assert time_proximity(3.0, TIERS, 0.1) == 0.7
    assert time_proximity(6.9, TIERS, 0.1) == 0.4
    assert time_proximity(30.0, TIERS, 0.1) == 0.1


def test_day_difference_is_absolute() -> None:
    now = datetime(2026, 1, 10, tzinfo=UTC)
    earlier = now - timedelta(hours=36)
    assert day_difference(now, earlier) == 1.5
    assert day_difference(earlier, now) == 1.5
