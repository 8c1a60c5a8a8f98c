import random

from quiz_funnel.shuffle import answer_seed, seeded_shuffle, session_shuffle

ITEMS = ["a", "b", "c", "d"]


def test_session_shuffle_is_a_permutation_and_leaves_input_alone():
    items = list(range(10))
    shuffled = session_shuffle(items)
    assert sorted(shuffled) == items
    assert items == list(range(10))


def test_session_shuffle_accepts_an_rng():
    first = session_shuffle(range(20), random.Random(7))
    second = session_shuffle(range(20), random.Random(7))
    assert first == second


def test_seeded_shuffle_is_deterministic():
    assert seeded_shuffle(ITEMS, 12345) == seeded_shuffle(ITEMS, 12345)
    assert sorted(seeded_shuffle(ITEMS, 12345)) == ITEMS


def test_seeded_shuffle_varies_with_seed():
    orders = {tuple(seeded_shuffle(ITEMS, seed)) for seed in range(1_700_000_000_000, 1_700_000_000_050)}
    assert len(orders) > 1


def test_seeded_shuffle_handles_short_lists():
    assert seeded_shuffle([], 5) == []
    assert seeded_shuffle(["only"], 5) == ["only"]


def test_answer_seed_adds_first_character_code():
    assert answer_seed("a1", 1000) == 1000 + ord("a")
    assert answer_seed("b1", 1000) != answer_seed("c1", 1000)
    assert answer_seed("", 1000) == 1000


def test_answer_seed_defaults_to_current_time():
    assert answer_seed("q") > 1_600_000_000_000


def test_ids_with_separated_first_characters_get_different_orders():
    # Seeds only differ by the first character code, so ids starting with
    # neighbouring letters (a1, b2) share an order for about a quarter of
    # timestamps. Letters twelve apart always move the last slot.
    for timestamp in range(1_700_000_000_000, 1_700_000_001_000):
        first = seeded_shuffle(ITEMS, answer_seed("a1", timestamp))
        second = seeded_shuffle(ITEMS, answer_seed("m1", timestamp))
        assert first != second
