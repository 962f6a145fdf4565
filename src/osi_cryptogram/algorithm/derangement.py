"""Uniform random derangements.

Martínez, Panholzer and Prodinger, "Generating random derangements" (2008).
The permutation is built by swaps that never leave a fixed point, and an
element is closed into a 2-cycle with probability (u-1) D(u-2) / D(u), which
makes every derangement equally likely. No output is ever rejected.
"""
import random
from functools import lru_cache
from typing import List

from osi_cryptogram.utils import ALPHABET, CipherMap


@lru_cache(maxsize=None)
def derangement_count(n: int) -> int:
    """D(n), the number of derangements of n elements."""
    if n < 0:
        raise ValueError("n must be non-negative")
    if n == 0:
        return 1
    if n == 1:
        return 0
    return (n - 1) * (derangement_count(n - 1) + derangement_count(n - 2))


def random_derangement(n: int, rng: random.Random) -> List[int]:
    """Return a permutation of range(n) where no index maps to itself."""
    if n == 1:
        raise ValueError("a single element has no derangement")

    perm = list(range(n))
    marked = [False] * n
    i = n - 1
    u = n  # unmarked positions in perm[0..i]

    while u >= 2:
        if not marked[i]:
            # There is always another unmarked position below i while u >= 2.
            j = rng.choice([k for k in range(i) if not marked[k]])
            perm[i], perm[j] = perm[j], perm[i]

            # Exact integer form of p < (u-1) D(u-2) / D(u).
            if rng.randrange(derangement_count(u)) < (u - 1) * derangement_count(u - 2):
                marked[j] = True
                u -= 1
            u -= 1
        i -= 1

    return perm


def generate_cipher(rng: random.Random | None = None) -> CipherMap:
    """Random plaintext -> ciphertext letter map with no letter mapped to itself."""
    rng = rng or random.SystemRandom()
    perm = random_derangement(len(ALPHABET), rng)
    return {ALPHABET[i]: ALPHABET[perm[i]] for i in range(len(ALPHABET))}
