import random
import threading
from typing import Dict, FrozenSet, List, Optional, Sequence

import structlog

from osi_cryptogram import persistence, solution_checker
from osi_cryptogram.config import EngineConfig
from osi_cryptogram.content import DEFAULT_PASSAGES
from osi_cryptogram.encoder import build_puzzle
from osi_cryptogram.guess_store import GuessStore
from osi_cryptogram.hints import HintAdvisor
from osi_cryptogram.models.puzzle import (
    CheckResult,
    HintResult,
    Passage,
    ProgressState,
    Puzzle,
    Revealed,
    Solved,
    Wrong,
)
from osi_cryptogram.models.session_state import SessionState
from osi_cryptogram.persistence import KeyValueStore, MemoryStore
from osi_cryptogram.state_queue import SingleSlotQueue
from osi_cryptogram.state_snapshot import PuzzleView, SessionSnapshot
from osi_cryptogram.utils import InvalidInput, PuzzleLocked, PuzzleNotFound, normalize_letter

log = structlog.get_logger(__name__)


class CryptogramSession:
    """One player's session over a fixed list of passages.

    Every public action runs under one lock, and every mutating action writes
    a snapshot to the store and publishes a SessionSnapshot afterwards.
    Storage is best-effort: failures are logged and never raised.
    """

    def __init__(
        self,
        passages: Sequence[Passage] = DEFAULT_PASSAGES,
        *,
        store: Optional[KeyValueStore] = None,
        rng: Optional[random.Random] = None,
        config: Optional[EngineConfig] = None,
        snapshots: Optional[SingleSlotQueue[SessionSnapshot]] = None,
        restore: bool = True,
    ) -> None:
        if not passages:
            raise ValueError("at least one passage is required")
        self.passages = tuple(passages)
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self.rng = rng or random.SystemRandom()
        self.config = config or EngineConfig()
        self.snapshots = snapshots
        self._lock = threading.RLock()
        self._version = 0
        self.restored = False

        if restore:
            self.restore()
        else:
            self.state = self._fresh_state()
            self._publish()

    # ---- Construction ----

    def _fresh_state(self) -> SessionState:
        puzzles = [build_puzzle(p, self.rng) for p in self.passages]
        return SessionState(
            passages=self.passages,
            puzzles=puzzles,
            current_index=0,
            guesses=GuessStore(),
            hints=HintAdvisor(
                max_hints=self.config.max_hints,
                enforce_cap=self.config.enforce_hint_cap,
            ),
            unlocked=self._default_unlocked(puzzles),
        )

    def _default_unlocked(self, puzzles: Sequence[Puzzle]) -> set[int]:
        if self.config.unlock_all:
            return {p.id for p in puzzles}
        return {puzzles[0].id}

    # ---- Persistence ----

    def serialize(self) -> str:
        with self._lock:
            return persistence.serialize(self.state)

    def restore(self, blob: Optional[str] = None) -> bool:
        """Load state from `blob`, or from the store when no blob is given.

        Falls back to a freshly generated session when nothing usable is found.
        """
        with self._lock:
            if blob is None:
                blob = persistence.read_blob(self.store, self.config.storage_key)
            fresh = self._fresh_state()
            state = persistence.deserialize(blob, fresh)
            self.restored = state is not None
            if state is None:
                log.info("starting fresh session", passages=len(self.passages))
                state = fresh
            else:
                log.info("restored session", current_index=state.current_index)
            self.state = state
            self._commit()
            return self.restored

    def save(self) -> bool:
        with self._lock:
            return persistence.write_blob(
                self.store, self.config.storage_key, persistence.serialize(self.state)
            )

    def _commit(self) -> None:
        self.save()
        self._publish()

    # ---- Snapshots ----

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state_version=self._version,
                current_index=self.state.current_index,
                puzzles=tuple(self._view(i) for i in range(len(self.state.puzzles))),
            )

    def _view(self, index: int) -> PuzzleView:
        puzzle = self.state.puzzles[index]
        return PuzzleView(
            index=index,
            id=puzzle.id,
            name=puzzle.name,
            encrypted_text=puzzle.encrypted_text,
            frequency_map=dict(puzzle.frequency_map),
            guesses=self.state.guesses.guesses(puzzle.id),
            conflicts=self.state.guesses.get_conflicts(puzzle.id),
            progress=self._progress(index),
            hints_remaining=self._hints_remaining(index),
        )

    def _publish(self) -> None:
        self._version += 1
        if self.snapshots is not None:
            self.snapshots.publish(self.snapshot())

    # ---- Queries ----

    def _playable(self, index: Optional[int]) -> int:
        """Resolve the index of a puzzle the player may act on."""
        i = self._index(index)
        puzzle = self.state.puzzles[i]
        if puzzle.id not in self.state.unlocked:
            raise PuzzleLocked(f"Puzzle {puzzle.id} ({puzzle.name}) is locked")
        return i

    def _index(self, index: Optional[int]) -> int:
        if index is None:
            return self.state.current_index
        if not 0 <= index < len(self.state.puzzles):
            raise PuzzleNotFound(f"No puzzle at index {index}")
        return index

    @property
    def current_index(self) -> int:
        return self.state.current_index

    def get_puzzle(self, index: Optional[int] = None) -> PuzzleView:
        with self._lock:
            return self._view(self._index(index))

    def get_guess(self, cipher_letter: str, index: Optional[int] = None) -> Optional[str]:
        with self._lock:
            puzzle = self.state.puzzles[self._index(index)]
            return self.state.guesses.get_guess(puzzle.id, cipher_letter)

    def get_conflicts(self, index: Optional[int] = None) -> Dict[str, FrozenSet[str]]:
        with self._lock:
            puzzle = self.state.puzzles[self._index(index)]
            return self.state.guesses.get_conflicts(puzzle.id)

    def check_solved(self, index: Optional[int] = None) -> bool:
        with self._lock:
            return self._is_solved(self._index(index))

    def _is_solved(self, index: int) -> bool:
        puzzle = self.state.puzzles[index]
        return solution_checker.is_solved(
            puzzle, self.state.plaintext(index), self.state.guesses.guesses(puzzle.id)
        )

    def progress(self, index: Optional[int] = None) -> ProgressState:
        with self._lock:
            return self._progress(self._index(index))

    def _progress(self, index: int) -> ProgressState:
        puzzle = self.state.puzzles[index]
        guessed, total = solution_checker.progress(puzzle, self.state.guesses.guesses(puzzle.id))
        return ProgressState(
            puzzle_id=puzzle.id,
            solved=self._is_solved(index),
            hints_used=self.state.hints.hints_used(puzzle.id),
            unlocked=puzzle.id in self.state.unlocked,
            letters_guessed=guessed,
            letters_total=total,
        )

    def hints_remaining(self, index: Optional[int] = None) -> int:
        with self._lock:
            return self._hints_remaining(self._index(index))

    def _hints_remaining(self, index: int) -> int:
        puzzle = self.state.puzzles[index]
        return self.state.hints.remaining(puzzle.id, self.state.plaintext(index), self.state.guesses)

    def all_progress(self) -> List[ProgressState]:
        with self._lock:
            return [self._progress(i) for i in range(len(self.state.puzzles))]

    # ---- Actions ----

    def set_guess(self, cipher_letter: str, plain_letter: Optional[str], index: Optional[int] = None) -> bool:
        """Record a guess on a puzzle (the current one by default).

        Returns False, changing nothing, when the letters are not A-Z or the
        cipher letter does not occur in the puzzle. Raises PuzzleLocked for a
        locked puzzle.
        """
        with self._lock:
            i = self._playable(index)
            puzzle = self.state.puzzles[i]
            try:
                cipher = normalize_letter(cipher_letter)
                if cipher not in puzzle.frequency_map:
                    raise InvalidInput(f"{cipher} does not occur in puzzle {puzzle.id}")
                self.state.guesses.set_guess(puzzle.id, cipher, plain_letter)
            except InvalidInput as e:
                log.debug("guess rejected", puzzle_id=puzzle.id, reason=str(e))
                return False
            log.debug("guess set", puzzle_id=puzzle.id, cipher=cipher, plain=plain_letter or None)
            self._after_guess(i)
            self._commit()
            return True

    def clear_guess(self, cipher_letter: str, index: Optional[int] = None) -> bool:
        return self.set_guess(cipher_letter, None, index)

    def clear_all(self, index: Optional[int] = None) -> None:
        with self._lock:
            puzzle = self.state.puzzles[self._playable(index)]
            self.state.guesses.clear_all(puzzle.id)
            log.info("guesses cleared", puzzle_id=puzzle.id)
            self._commit()

    def _after_guess(self, index: int) -> None:
        """Auto-check after each change; a solve unlocks the next puzzle."""
        if not self._is_solved(index):
            return
        puzzle = self.state.puzzles[index]
        log.info("puzzle solved", puzzle_id=puzzle.id)
        if index + 1 < len(self.state.puzzles):
            self.state.unlocked.add(self.state.puzzles[index + 1].id)

    def check_answer(self, index: Optional[int] = None) -> CheckResult:
        with self._lock:
            i = self._index(index)
            puzzle = self.state.puzzles[i]
            if self._is_solved(i):
                return Solved(puzzle_id=puzzle.id, plaintext=self.state.plaintext(i))
            guessed, total = solution_checker.progress(puzzle, self.state.guesses.guesses(puzzle.id))
            return Wrong(puzzle_id=puzzle.id, letters_guessed=guessed, letters_total=total)

    def request_hint(self, index: Optional[int] = None) -> HintResult:
        with self._lock:
            i = self._playable(index)
            result = self.state.hints.request_hint(
                self.state.puzzles[i], self.state.plaintext(i), self.state.guesses
            )
            if isinstance(result, Revealed):
                self._after_guess(i)
                self._commit()
            return result

    def switch_puzzle(self, index: int) -> PuzzleView:
        """Open another puzzle on an empty grid.

        Raises PuzzleNotFound for a bad index and PuzzleLocked when locked.
        """
        with self._lock:
            return self._open(self._playable(index))

    def next_unsolved(self) -> Optional[PuzzleView]:
        """Unlock and open the first unsolved puzzle.

        Returns None, changing nothing, when every puzzle is solved.
        """
        with self._lock:
            for i, puzzle in enumerate(self.state.puzzles):
                if not self._is_solved(i):
                    self.state.unlocked.add(puzzle.id)
                    return self._open(i)
            log.info("all puzzles solved")
            return None

    def _open(self, index: int) -> PuzzleView:
        puzzle = self.state.puzzles[index]
        self.state.current_index = index
        self.state.guesses.clear_all(puzzle.id)
        log.info("switched puzzle", puzzle_id=puzzle.id, index=index)
        self._commit()
        return self._view(index)

    def restart_all(self, regenerate: bool = False) -> None:
        """Drop all progress and the persisted blob, then start at puzzle 0.

        Cipher maps are kept unless `regenerate` is set.
        """
        with self._lock:
            persistence.remove_blob(self.store, self.config.storage_key)
            if regenerate:
                self.state = self._fresh_state()
            else:
                self.state.guesses.reset()
                self.state.hints.reset()
                self.state.unlocked = self._default_unlocked(self.state.puzzles)
                self.state.current_index = 0
            log.info("session restarted", regenerated=regenerate)
            self._commit()
