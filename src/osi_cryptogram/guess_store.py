from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, Mapping, Set

from osi_cryptogram.utils import VOWELS, normalize_letter


class GuessStore:
    """The player's cipher -> plaintext guesses, one mapping per puzzle id.

    Two cipher letters may be guessed to the same plaintext letter; that is a
    conflict to report, not an error. Persisting after a mutation is left to
    the caller.
    """

    def __init__(self, initial: Mapping[int, Mapping[str, str]] | None = None) -> None:
        self._guesses: Dict[int, Dict[str, str]] = {}
        for puzzle_id, mapping in (initial or {}).items():
            for cipher_letter, plain_letter in mapping.items():
                self.set_guess(puzzle_id, cipher_letter, plain_letter)

    def set_guess(self, puzzle_id: int, cipher_letter: str, plain_letter: str | None) -> None:
        """Record a guess, or clear it when plain_letter is empty or None.

        Raises InvalidInput, leaving the store untouched, for anything outside A-Z.
        """
        cipher = normalize_letter(cipher_letter)
        plain = normalize_letter(plain_letter, allow_empty=True)
        if plain is None:
            self.clear_guess(puzzle_id, cipher)
            return
        self._guesses.setdefault(puzzle_id, {})[cipher] = plain

    def clear_guess(self, puzzle_id: int, cipher_letter: str) -> None:
        cipher = normalize_letter(cipher_letter)
        mapping = self._guesses.get(puzzle_id)
        if mapping is not None:
            mapping.pop(cipher, None)

    def get_guess(self, puzzle_id: int, cipher_letter: str) -> str | None:
        cipher = normalize_letter(cipher_letter)
        return self._guesses.get(puzzle_id, {}).get(cipher)

    def guesses(self, puzzle_id: int) -> Dict[str, str]:
        """A copy of the guesses for one puzzle."""
        return dict(self._guesses.get(puzzle_id, {}))

    def all_guesses(self) -> Dict[int, Dict[str, str]]:
        return {pid: dict(m) for pid, m in self._guesses.items() if m}

    def get_conflicts(self, puzzle_id: int) -> Dict[str, FrozenSet[str]]:
        """Plaintext letters currently guessed from more than one cipher letter."""
        by_plain: Dict[str, Set[str]] = defaultdict(set)
        for cipher, plain in self._guesses.get(puzzle_id, {}).items():
            by_plain[plain].add(cipher)
        return {plain: frozenset(ciphers) for plain, ciphers in by_plain.items() if len(ciphers) > 1}

    def conflicting_ciphers(self, puzzle_id: int) -> FrozenSet[str]:
        return frozenset().union(*self.get_conflicts(puzzle_id).values())

    def revealed_vowels(self, puzzle_id: int) -> Set[str]:
        """Vowels that appear anywhere among the guessed values."""
        return {v for v in self._guesses.get(puzzle_id, {}).values() if v in VOWELS}

    def clear_all(self, puzzle_id: int) -> None:
        self._guesses.pop(puzzle_id, None)

    def reset(self, puzzle_ids: Iterable[int] | None = None) -> None:
        """Clear the given puzzles, or every puzzle."""
        if puzzle_ids is None:
            self._guesses.clear()
            return
        for puzzle_id in puzzle_ids:
            self.clear_all(puzzle_id)
