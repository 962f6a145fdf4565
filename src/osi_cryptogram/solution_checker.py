from typing import Mapping, Tuple

from osi_cryptogram.models.puzzle import Puzzle
from osi_cryptogram.utils import is_letter, letters_only

PLACEHOLDER = "."


def build_candidate(puzzle: Puzzle, guesses: Mapping[str, str]) -> str:
    """Ciphertext with each letter swapped for its guess, or PLACEHOLDER when unguessed."""
    out = []
    for ch in puzzle.encrypted_text:
        if is_letter(ch):
            out.append(guesses.get(ch.upper(), PLACEHOLDER))
        else:
            out.append(ch)
    return "".join(out)


def normalize_candidate(candidate: str) -> str:
    # Unguessed letters stay as PLACEHOLDER, which never equals a plaintext letter.
    return "".join(ch for ch in candidate if is_letter(ch) or ch == PLACEHOLDER).upper()


def is_solved(puzzle: Puzzle, plaintext: str, guesses: Mapping[str, str]) -> bool:
    """Compare letters only, ignoring case, spacing and punctuation."""
    return normalize_candidate(build_candidate(puzzle, guesses)) == letters_only(plaintext)


def progress(puzzle: Puzzle, guesses: Mapping[str, str]) -> Tuple[int, int]:
    """(distinct cipher letters guessed, distinct cipher letters in the puzzle)."""
    occurring = set(puzzle.frequency_map)
    return len(occurring & set(guesses)), len(occurring)
