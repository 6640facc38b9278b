"""
Fisher-Yates shuffle for question and option randomization
"""
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


def fisher_yates(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a uniformly shuffled copy of ``items``; the input is left untouched
    """
    rng = rng or random
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
