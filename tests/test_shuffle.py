import random
from collections import Counter

from app.utils.shuffle import fisher_yates


def test_returns_permutation_without_mutating_input():
    items = list(range(20))
    shuffled = fisher_yates(items)

    assert sorted(shuffled) == items
    assert items == list(range(20))
    assert shuffled is not items


def test_empty_and_single():
    assert fisher_yates([]) == []
    assert fisher_yates(["only"]) == ["only"]


def test_seeded_rng_is_reproducible():
    assert fisher_yates("abcdef", random.Random(7)) == fisher_yates("abcdef", random.Random(7))


def test_permutations_are_roughly_uniform():
    rng = random.Random(1234)
    counts = Counter(tuple(fisher_yates("abc", rng)) for _ in range(6000))

    assert len(counts) == 6
    # Expected 1000 each; a biased shuffle lands far outside this band
    assert all(800 < count < 1200 for count in counts.values())
