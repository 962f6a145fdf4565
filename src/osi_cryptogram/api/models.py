from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

from osi_cryptogram.models.puzzle import CheckResult, HintResult, ProgressState, Revealed, Solved
from osi_cryptogram.state_snapshot import PuzzleView, SessionSnapshot


class Progress(BaseModel):
    solved: bool
    hints_used: int
    unlocked: bool
    letters_guessed: int
    letters_total: int

    @classmethod
    def from_state(cls, p: ProgressState) -> "Progress":
        return cls(
            solved=p.solved,
            hints_used=p.hints_used,
            unlocked=p.unlocked,
            letters_guessed=p.letters_guessed,
            letters_total=p.letters_total,
        )


class PuzzleResponse(BaseModel):
    index: int
    id: int
    name: str
    encrypted_text: str
    frequency_map: Dict[str, int]
    guesses: Dict[str, str]
    conflicts: Dict[str, List[str]]
    progress: Progress
    hints_remaining: int

    @classmethod
    def from_view(cls, view: PuzzleView) -> "PuzzleResponse":
        return cls(
            index=view.index,
            id=view.id,
            name=view.name,
            encrypted_text=view.encrypted_text,
            frequency_map=view.frequency_map,
            guesses=view.guesses,
            conflicts={plain: sorted(ciphers) for plain, ciphers in view.conflicts.items()},
            progress=Progress.from_state(view.progress),
            hints_remaining=view.hints_remaining,
        )


class PuzzleSummary(BaseModel):
    index: int
    id: int
    name: str
    progress: Progress


class StateResponse(BaseModel):
    state_version: int
    current_index: int
    complete: bool
    puzzles: List[PuzzleSummary]

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "StateResponse":
        return cls(
            state_version=snapshot.state_version,
            current_index=snapshot.current_index,
            complete=snapshot.complete,
            puzzles=[
                PuzzleSummary(index=v.index, id=v.id, name=v.name, progress=Progress.from_state(v.progress))
                for v in snapshot.puzzles
            ],
        )


class GuessRequest(BaseModel):
    plain: str


class HintResponse(BaseModel):
    revealed: bool
    vowel: Optional[str] = None
    cipher_letters: List[str] = []
    reason: Optional[Literal["exhausted", "cap"]] = None
    puzzle: PuzzleResponse

    @classmethod
    def from_result(cls, result: HintResult, view: PuzzleView) -> "HintResponse":
        if isinstance(result, Revealed):
            return cls(
                revealed=True,
                vowel=result.vowel,
                cipher_letters=list(result.cipher_letters),
                puzzle=PuzzleResponse.from_view(view),
            )
        return cls(revealed=False, reason=result.reason, puzzle=PuzzleResponse.from_view(view))


class CheckResponse(BaseModel):
    solved: bool
    plaintext: Optional[str] = None
    letters_guessed: Optional[int] = None
    letters_total: Optional[int] = None

    @classmethod
    def from_result(cls, result: CheckResult) -> "CheckResponse":
        if isinstance(result, Solved):
            return cls(solved=True, plaintext=result.plaintext)
        return cls(solved=False, letters_guessed=result.letters_guessed, letters_total=result.letters_total)


class NextResponse(BaseModel):
    all_solved: bool
    puzzle: Optional[PuzzleResponse] = None
