from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Tuple

from osi_cryptogram.models.puzzle import ProgressState


@dataclass(frozen=True, slots=True)
class PuzzleView:
    """Read-only view of one puzzle for rendering. No cipher map, no plaintext."""

    index: int
    id: int
    name: str
    encrypted_text: str
    frequency_map: Dict[str, int]
    guesses: Dict[str, str]
    conflicts: Dict[str, FrozenSet[str]]
    progress: ProgressState
    hints_remaining: int

    @property
    def conflicting_ciphers(self) -> FrozenSet[str]:
        return frozenset().union(*self.conflicts.values())

    def frequency_order(self) -> Tuple[Tuple[str, int], ...]:
        """Letters by descending count, ties alphabetical."""
        return tuple(sorted(self.frequency_map.items(), key=lambda kv: (-kv[1], kv[0])))


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Immutable copy of session state handed to presentation layers."""

    state_version: int
    current_index: int
    puzzles: Tuple[PuzzleView, ...] = field(default_factory=tuple)

    @property
    def current(self) -> PuzzleView:
        return self.puzzles[self.current_index]

    @property
    def complete(self) -> bool:
        return bool(self.puzzles) and all(p.progress.solved for p in self.puzzles)
