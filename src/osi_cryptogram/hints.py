from typing import Dict, Mapping, Set

import structlog

from osi_cryptogram.config import MAX_HINTS
from osi_cryptogram.guess_store import GuessStore
from osi_cryptogram.models.puzzle import HintResult, NoHintsRemain, Puzzle, Revealed
from osi_cryptogram.utils import distinct_vowels, is_letter

log = structlog.get_logger(__name__)


class HintAdvisor:
    """Reveals one vowel at a time and counts hints used per puzzle.

    A vowel counts as revealed once it is any guessed value, so hints run out
    when every vowel of the passage is on the board. max_hints is only a hard
    limit when enforce_cap is set.
    """

    def __init__(
        self,
        hints_used: Mapping[int, int] | None = None,
        *,
        max_hints: int = MAX_HINTS,
        enforce_cap: bool = False,
    ) -> None:
        self._hints_used: Dict[int, int] = dict(hints_used or {})
        self.max_hints = max_hints
        self.enforce_cap = enforce_cap

    def hints_used(self, puzzle_id: int) -> int:
        return self._hints_used.get(puzzle_id, 0)

    def all_hints_used(self) -> Dict[int, int]:
        return dict(self._hints_used)

    def unrevealed_vowels(self, puzzle_id: int, plaintext: str, guesses: GuessStore) -> list[str]:
        revealed = guesses.revealed_vowels(puzzle_id)
        return [v for v in distinct_vowels(plaintext) if v not in revealed]

    def remaining(self, puzzle_id: int, plaintext: str, guesses: GuessStore) -> int:
        """Hints still available: unrevealed vowels, bounded by the cap when enforced."""
        left = len(self.unrevealed_vowels(puzzle_id, plaintext, guesses))
        if self.enforce_cap:
            left = min(left, max(0, self.max_hints - self.hints_used(puzzle_id)))
        return left

    def request_hint(self, puzzle: Puzzle, plaintext: str, guesses: GuessStore) -> HintResult:
        """Reveal the first unrevealed vowel (A, E, I, O, U order) everywhere it occurs."""
        if self.enforce_cap and self.hints_used(puzzle.id) >= self.max_hints:
            log.info("hint cap reached", puzzle_id=puzzle.id, hints_used=self.hints_used(puzzle.id))
            return NoHintsRemain(puzzle_id=puzzle.id, reason="cap")

        pending = self.unrevealed_vowels(puzzle.id, plaintext, guesses)
        if not pending:
            log.debug("no vowels left to reveal", puzzle_id=puzzle.id)
            return NoHintsRemain(puzzle_id=puzzle.id)

        vowel = pending[0]
        ciphers: Set[str] = set()
        for cipher_ch, plain_ch in zip(puzzle.encrypted_text, plaintext):
            if is_letter(cipher_ch) and plain_ch.upper() == vowel:
                ciphers.add(cipher_ch.upper())

        for cipher in ciphers:
            guesses.set_guess(puzzle.id, cipher, vowel)
        self._hints_used[puzzle.id] = self.hints_used(puzzle.id) + 1

        log.info(
            "hint revealed",
            puzzle_id=puzzle.id,
            vowel=vowel,
            cipher_letters=sorted(ciphers),
            hints_used=self._hints_used[puzzle.id],
        )
        return Revealed(puzzle_id=puzzle.id, vowel=vowel, cipher_letters=tuple(sorted(ciphers)))

    def load(self, hints_used: Mapping[int, int]) -> None:
        """Replace every counter, e.g. from a restored session."""
        self._hints_used = {pid: n for pid, n in hints_used.items() if n > 0}

    def reset(self) -> None:
        self._hints_used.clear()
