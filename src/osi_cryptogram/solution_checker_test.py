import pytest

from osi_cryptogram.encoder import frequency_map
from osi_cryptogram.models.puzzle import Puzzle
from osi_cryptogram.solution_checker import build_candidate, is_solved, progress

NETWORK_GUESSES = {"Q": "N", "S": "E", "B": "T", "J": "W", "L": "O", "I": "R", "X": "K"}


def make_puzzle(encrypted_text: str) -> Puzzle:
    return Puzzle(
        id=3,
        name="Network",
        cipher_map={},
        encrypted_text=encrypted_text,
        frequency_map=frequency_map(encrypted_text),
    )


class TestIsSolved:
    """Test suite for is_solved"""

    def test_all_correct(self):
        """Test seven correct guesses solve NETWORK"""
        assert is_solved(make_puzzle("QSBJLIX"), "NETWORK", NETWORK_GUESSES)

    @pytest.mark.parametrize("cipher", sorted(NETWORK_GUESSES))
    def test_single_wrong_guess(self, cipher):
        """Test changing any one guess to a wrong letter breaks the solve"""
        guesses = dict(NETWORK_GUESSES)
        guesses[cipher] = "Z"
        assert not is_solved(make_puzzle("QSBJLIX"), "NETWORK", guesses)

    @pytest.mark.parametrize("cipher", sorted(NETWORK_GUESSES))
    def test_single_missing_guess(self, cipher):
        """Test an unguessed letter never matches"""
        guesses = dict(NETWORK_GUESSES)
        del guesses[cipher]
        assert not is_solved(make_puzzle("QSBJLIX"), "NETWORK", guesses)

    def test_no_guesses(self):
        """Test an empty guess mapping is not a solve"""
        assert not is_solved(make_puzzle("QSBJLIX"), "NETWORK", {})

    def test_punctuation_and_case_insensitive(self):
        """Test spacing, punctuation and case never block a solve"""
        puzzle = make_puzzle("Qsb-jli, X!")
        assert is_solved(puzzle, "NETWORK", NETWORK_GUESSES)
        assert is_solved(puzzle, "net work.", NETWORK_GUESSES)
        assert is_solved(make_puzzle("QSBJLIX"), "Net-work!", NETWORK_GUESSES)

    def test_empty_passage(self):
        """Test a passage with no letters is trivially solved"""
        assert is_solved(make_puzzle("..."), "---", {})


class TestBuildCandidate:
    """Test suite for build_candidate"""

    def test_placeholder_and_punctuation(self):
        """Test unguessed letters become placeholders and punctuation stays"""
        puzzle = make_puzzle("Qs, bj!")
        assert build_candidate(puzzle, {"Q": "N", "B": "T"}) == "N., T.!"


class TestProgress:
    """Test suite for progress"""

    def test_counts_distinct_letters(self):
        """Test progress counts distinct cipher letters"""
        puzzle = make_puzzle("QQSB")
        assert progress(puzzle, {}) == (0, 3)
        assert progress(puzzle, {"Q": "N"}) == (1, 3)
        assert progress(puzzle, {"Q": "N", "Z": "A"}) == (1, 3)
