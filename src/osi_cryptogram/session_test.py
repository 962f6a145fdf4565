import json
import random

import pytest

from osi_cryptogram.config import EngineConfig
from osi_cryptogram.content import DEFAULT_PASSAGES
from osi_cryptogram.models.puzzle import NoHintsRemain, Passage, Revealed, Solved, Wrong
from osi_cryptogram.persistence import MemoryStore
from osi_cryptogram.session import CryptogramSession
from osi_cryptogram.state_queue import SingleSlotQueue
from osi_cryptogram.utils import PuzzleLocked, PuzzleNotFound

KEY = EngineConfig().storage_key


def make_session(store=None, seed=0, **kwargs) -> CryptogramSession:
    return CryptogramSession(
        DEFAULT_PASSAGES,
        store=store if store is not None else MemoryStore(),
        rng=random.Random(seed),
        **kwargs,
    )


def answer_key(session: CryptogramSession, index: int) -> dict:
    """cipher -> plain for every cipher letter in the puzzle."""
    puzzle = session.state.puzzles[index]
    return {c: p for p, c in puzzle.cipher_map.items() if c in puzzle.frequency_map}


def solve(session: CryptogramSession, index: int) -> None:
    for cipher, plain in answer_key(session, index).items():
        assert session.set_guess(cipher, plain, index)


class BrokenStore:
    def get(self, key):
        raise OSError("unavailable")

    def set(self, key, value):
        raise OSError("unavailable")

    def remove(self, key):
        raise OSError("unavailable")


class TestStartup:
    """Test suite for session construction"""

    def test_fresh_session(self):
        """Test a new session starts on puzzle 0 with everything unlocked"""
        session = make_session()
        assert not session.restored
        assert session.current_index == 0
        assert all(p.unlocked for p in session.all_progress())
        assert session.get_puzzle().name == "Physical"

    def test_fresh_session_is_saved(self):
        """Test startup writes the first snapshot"""
        store = MemoryStore()
        make_session(store)
        assert KEY in store.data

    def test_restores_from_store(self):
        """Test a second session picks up the first one's progress"""
        store = MemoryStore()
        first = make_session(store, seed=1)
        first.switch_puzzle(3)
        cipher, plain = next(iter(answer_key(first, 3).items()))
        first.set_guess(cipher, plain)
        first.request_hint()

        second = make_session(store, seed=2)
        assert second.restored
        assert second.current_index == 3
        assert second.get_puzzle().encrypted_text == first.get_puzzle().encrypted_text
        assert second.get_guess(cipher) == plain
        assert second.progress().hints_used == 1
        assert second.serialize() == first.serialize()

    def test_corrupt_store_starts_fresh(self):
        """Test garbage in the store falls back to fresh generation"""
        store = MemoryStore({KEY: "{not json"})
        session = make_session(store)
        assert not session.restored
        assert json.loads(store.data[KEY])["currentPuzzleIndex"] == 0

    def test_deeply_nested_store_starts_fresh(self):
        """Test a deeply nested blob in the store falls back and is overwritten"""
        store = MemoryStore({KEY: "[" * 100000})
        session = make_session(store)
        assert not session.restored
        assert json.loads(store.data[KEY])["currentPuzzleIndex"] == 0

    def test_storage_failure_is_not_fatal(self):
        """Test a store that always fails still gives a usable session"""
        session = make_session(BrokenStore())
        assert not session.restored
        cipher = next(iter(answer_key(session, 0)))
        assert session.set_guess(cipher, "A")
        assert session.get_guess(cipher) == "A"
        session.restart_all()
        assert session.get_guess(cipher) is None

    def test_requires_passages(self):
        """Test an empty passage list is rejected"""
        with pytest.raises(ValueError):
            CryptogramSession([])


class TestGuesses:
    """Test suite for guess actions"""

    def test_set_and_clear(self):
        """Test a guess can be set and cleared"""
        session = make_session()
        cipher = next(iter(answer_key(session, 0)))
        assert session.set_guess(cipher, "e")
        assert session.get_guess(cipher) == "E"
        assert session.clear_guess(cipher)
        assert session.get_guess(cipher) is None

    @pytest.mark.parametrize("plain", ["1", "ab", "!", "é"])
    def test_invalid_value_not_recorded(self, plain):
        """Test invalid keystrokes are not recorded"""
        session = make_session()
        cipher = next(iter(answer_key(session, 0)))
        before = session.serialize()
        assert session.set_guess(cipher, plain) is False
        assert session.serialize() == before

    def test_cipher_letter_must_occur(self):
        """Test a cipher letter absent from the ciphertext is rejected"""
        session = make_session()
        puzzle = session.state.puzzles[0]
        missing = next(c for c in "ABCDEFGHIJKLMNOPQRSTUVWXYZ" if c not in puzzle.frequency_map)
        assert session.set_guess(missing, "A") is False

    def test_conflicts(self):
        """Test two cipher letters on the same plain letter are reported"""
        session = make_session()
        c1, c2 = list(answer_key(session, 0))[:2]
        session.set_guess(c1, "A")
        session.set_guess(c2, "A")
        assert session.get_conflicts() == {"A": frozenset({c1, c2})}
        assert session.get_puzzle().conflicting_ciphers == frozenset({c1, c2})

    def test_clear_all(self):
        """Test clear_all empties the current puzzle"""
        session = make_session()
        for cipher in list(answer_key(session, 0))[:3]:
            session.set_guess(cipher, "X")
        session.clear_all()
        assert session.get_puzzle().guesses == {}

    def test_every_mutation_is_persisted(self):
        """Test the store holds the latest guess after each action"""
        store = MemoryStore()
        session = make_session(store)
        cipher = next(iter(answer_key(session, 0)))
        session.set_guess(cipher, "K")
        assert json.loads(store.data[KEY])["guesses"] == {"1": {cipher: "K"}}

    def test_bad_index(self):
        """Test an out-of-range index raises PuzzleNotFound"""
        session = make_session()
        with pytest.raises(PuzzleNotFound):
            session.set_guess("A", "B", 7)
        with pytest.raises(IndexError):
            session.get_puzzle(-1)


class TestSolving:
    """Test suite for solve checks"""

    def test_solve(self):
        """Test full correct guesses solve the puzzle"""
        session = make_session()
        assert not session.check_solved()
        solve(session, 0)
        assert session.check_solved()
        result = session.check_answer()
        assert result == Solved(puzzle_id=1, plaintext=DEFAULT_PASSAGES[0].text)
        assert json.loads(session.serialize())["solved"] == [1]

    def test_wrong_answer(self):
        """Test check_answer reports progress when wrong"""
        session = make_session()
        key = answer_key(session, 0)
        cipher = next(iter(key))
        session.set_guess(cipher, key[cipher])
        result = session.check_answer()
        assert result == Wrong(puzzle_id=1, letters_guessed=1, letters_total=len(key))

    def test_one_wrong_letter(self):
        """Test a single wrong letter blocks the solve"""
        session = make_session()
        solve(session, 0)
        cipher = next(iter(answer_key(session, 0)))
        wrong = "Z" if session.get_guess(cipher) != "Z" else "Y"
        session.set_guess(cipher, wrong)
        assert not session.check_solved()

    def test_solve_unlocks_next(self):
        """Test solving a puzzle unlocks the next when levels are locked"""
        session = make_session(config=EngineConfig(unlock_all=False))
        assert [p.unlocked for p in session.all_progress()][:3] == [True, False, False]
        with pytest.raises(PuzzleLocked):
            session.switch_puzzle(1)
        solve(session, 0)
        assert session.progress(1).unlocked
        session.switch_puzzle(1)
        assert session.current_index == 1

    def test_locked_puzzle_rejects_actions(self):
        """Test guesses, clears and hints on a locked puzzle raise PuzzleLocked"""
        session = make_session(config=EngineConfig(unlock_all=False))
        cipher = next(iter(answer_key(session, 1)))
        before = session.serialize()
        with pytest.raises(PuzzleLocked):
            session.set_guess(cipher, "A", 1)
        with pytest.raises(PuzzleLocked):
            session.clear_all(1)
        with pytest.raises(PuzzleLocked):
            session.request_hint(1)
        assert session.serialize() == before

    def test_punctuation_insensitive(self):
        """Test a passage with heavy punctuation solves on letters alone"""
        passages = [Passage(id=1, name="P", text="node-to-node, (E2E) ... ok!")]
        session = CryptogramSession(passages, rng=random.Random(4))
        solve(session, 0)
        assert session.check_solved()


class TestHints:
    """Test suite for hints through the session"""

    def test_hints_until_exhausted(self):
        """Test hints reveal each vowel and then stop changing state"""
        session = make_session()
        vowels = []
        while True:
            result = session.request_hint()
            if isinstance(result, NoHintsRemain):
                break
            assert isinstance(result, Revealed)
            vowels.append(result.vowel)
        assert vowels == ["A", "E", "I", "O", "U"]
        before = session.serialize()
        assert session.request_hint() == NoHintsRemain(puzzle_id=1)
        assert session.serialize() == before
        assert session.hints_remaining() == 0
        assert session.progress().hints_used == 5

    def test_enforced_cap(self):
        """Test the configured cap limits hints when enforced"""
        session = make_session(config=EngineConfig(enforce_hint_cap=True, max_hints=3))
        for _ in range(3):
            assert isinstance(session.request_hint(), Revealed)
        assert session.request_hint() == NoHintsRemain(puzzle_id=1, reason="cap")


class TestNavigation:
    """Test suite for switching and restarting"""

    def test_switch_clears_target_only(self):
        """Test switching opens the target on an empty grid and keeps other puzzles"""
        session = make_session()
        solve(session, 0)
        session.switch_puzzle(2)
        c = next(iter(answer_key(session, 2)))
        session.set_guess(c, "A")
        session.switch_puzzle(0)
        assert session.get_puzzle(2).guesses == {c: "A"}
        assert session.get_puzzle(0).guesses == {}
        session.switch_puzzle(2)
        assert session.get_puzzle(2).guesses == {}

    def test_next_unsolved(self):
        """Test next opens and unlocks the first unsolved puzzle"""
        session = make_session(config=EngineConfig(unlock_all=False))
        solve(session, 0)
        solve(session, 1)
        session.state.unlocked.discard(3)
        view = session.next_unsolved()
        assert view.index == 2
        assert session.current_index == 2
        assert view.guesses == {}
        assert session.progress(2).unlocked

    def test_next_unsolved_skips_to_gap(self):
        """Test next finds an unsolved puzzle before solved ones"""
        session = make_session()
        for i in (0, 2, 3):
            solve(session, i)
        session.switch_puzzle(5)
        assert session.next_unsolved().index == 1

    def test_next_unsolved_all_solved(self):
        """Test next reports completion and changes nothing when all are solved"""
        session = make_session()
        for i in range(len(DEFAULT_PASSAGES)):
            solve(session, i)
        before = session.serialize()
        assert session.next_unsolved() is None
        assert session.serialize() == before
        assert session.snapshot().complete

    def test_switch_bad_index(self):
        """Test switching to a missing puzzle raises"""
        with pytest.raises(PuzzleNotFound):
            make_session().switch_puzzle(99)

    def test_restart_all(self):
        """Test restart clears progress, keeps ciphers and re-saves"""
        store = MemoryStore()
        session = make_session(store, config=EngineConfig(unlock_all=False))
        texts = [p.encrypted_text for p in session.state.puzzles]
        solve(session, 0)
        session.switch_puzzle(1)
        session.request_hint()
        session.restart_all()
        assert session.current_index == 0
        assert session.state.guesses.all_guesses() == {}
        assert session.state.hints.all_hints_used() == {}
        assert session.state.unlocked == {1}
        assert [p.encrypted_text for p in session.state.puzzles] == texts
        saved = json.loads(store.data[KEY])
        assert saved["guesses"] == {} and saved["hintsUsed"] == {}

    def test_restart_regenerate(self):
        """Test restart can draw new ciphers"""
        session = make_session()
        before = [p.cipher_map for p in session.state.puzzles]
        session.restart_all(regenerate=True)
        assert [p.cipher_map for p in session.state.puzzles] != before


class TestSnapshots:
    """Test suite for snapshot publishing"""

    def test_publishes_after_actions(self):
        """Test every action publishes a newer snapshot"""
        queue = SingleSlotQueue()
        session = make_session(snapshots=queue)
        first = queue.poll()
        assert first is not None and first.current_index == 0
        assert queue.poll() is None
        session.switch_puzzle(4)
        snap = queue.poll()
        assert snap.current_index == 4
        assert snap.state_version > first.state_version
        assert snap.current.name == "Session"
        assert not snap.complete

    def test_view_hides_solution(self):
        """Test the puzzle view exposes no cipher map or plaintext"""
        view = make_session().get_puzzle()
        assert not hasattr(view, "cipher_map")
        assert DEFAULT_PASSAGES[0].text not in repr(view)

    def test_complete(self):
        """Test the snapshot reports completion when every puzzle is solved"""
        session = make_session()
        for i in range(len(DEFAULT_PASSAGES)):
            solve(session, i)
        assert session.snapshot().complete
