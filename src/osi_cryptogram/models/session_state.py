from dataclasses import dataclass, field
from typing import List, Sequence, Set

from osi_cryptogram.guess_store import GuessStore
from osi_cryptogram.hints import HintAdvisor
from osi_cryptogram.models.puzzle import Passage, Puzzle


@dataclass(slots=True)
class SessionState:
    """Everything one session owns.

    puzzles[i] is always derived from passages[i]; current_index stays in range.
    """

    passages: Sequence[Passage]
    puzzles: List[Puzzle]
    current_index: int = 0
    guesses: GuessStore = field(default_factory=GuessStore)
    hints: HintAdvisor = field(default_factory=HintAdvisor)
    unlocked: Set[int] = field(default_factory=set)

    def __post_init__(self) -> None:
        if len(self.passages) != len(self.puzzles):
            raise ValueError("every passage needs exactly one puzzle")
        if not 0 <= self.current_index < len(self.puzzles):
            raise IndexError(f"current_index {self.current_index} out of range")

    @property
    def current(self) -> Puzzle:
        return self.puzzles[self.current_index]

    def plaintext(self, index: int) -> str:
        return self.passages[index].text
