import random

from weighted_random import generate_numbers, select_weighted


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def test_no_duplicates_and_exact_count():
    items = [(n, n % 7 - 3) for n in range(1, 61)]
    for seed in range(50):
        picked = select_weighted(items, 6, random.Random(seed))
        assert len(picked) == 6
        assert len(set(picked)) == 6
        assert set(picked) <= set(range(1, 61))


def test_count_at_least_size_returns_everything():
    items = [("a", 1), ("b", 2)]
    assert select_weighted(items, 2) == ["a", "b"]
    assert select_weighted(items, 5) == ["a", "b"]
    assert select_weighted([], 3) == []


def test_zero_count():
    assert select_weighted([("a", 1), ("b", 2)], 0) == []


def test_low_draw_takes_first_remaining():
    items = [("a", -5), ("b", 0), ("c", 10)]
    assert select_weighted(items, 2, FixedRandom(0.0)) == ["a", "b"]


def test_overshoot_falls_back_to_last_item():
    items = [("a", 1), ("b", 1), ("c", 1)]
    assert select_weighted(items, 2, FixedRandom(1.5)) == ["c", "b"]


def test_heavy_weight_dominates():
    rng = random.Random(42)
    items = [("heavy", 1000), ("light", 0), ("negative", -20)]
    hits = sum(1 for _ in range(200) if select_weighted(items, 1, rng) == ["heavy"])
    assert hits >= 180


def test_generate_numbers_sorted():
    scores = [{"number": n, "final_score": 60 - n} for n in range(1, 61)]
    numbers = generate_numbers(scores, rng=random.Random(1))
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == 6
