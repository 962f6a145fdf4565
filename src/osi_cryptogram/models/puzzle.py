from dataclasses import dataclass
from typing import Dict, Literal


@dataclass(frozen=True, slots=True)
class Passage:
    """Plaintext content supplied to the engine."""

    id: int
    name: str
    text: str


@dataclass(frozen=True, slots=True)
class Puzzle:
    """A passage after encryption. Replaced wholesale, never mutated."""

    id: int
    name: str
    cipher_map: Dict[str, str]
    encrypted_text: str
    frequency_map: Dict[str, int]


@dataclass(frozen=True, slots=True)
class ProgressState:
    """Derived per-puzzle progress, computed on request."""

    puzzle_id: int
    solved: bool
    hints_used: int
    unlocked: bool
    letters_guessed: int
    letters_total: int


@dataclass(frozen=True, slots=True)
class Solved:
    puzzle_id: int
    plaintext: str


@dataclass(frozen=True, slots=True)
class Wrong:
    puzzle_id: int
    letters_guessed: int
    letters_total: int


type CheckResult = Solved | Wrong


@dataclass(frozen=True, slots=True)
class Revealed:
    puzzle_id: int
    vowel: str
    cipher_letters: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NoHintsRemain:
    puzzle_id: int
    reason: Literal["exhausted", "cap"] = "exhausted"


type HintResult = Revealed | NoHintsRemain
