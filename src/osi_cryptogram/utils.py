import json
import pathlib
from typing import Dict, Iterable, List, Mapping

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

from osi_cryptogram.models.puzzle import Passage

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
VOWELS = "AEIOU"

_LETTERS = frozenset(ALPHABET + ALPHABET.lower())

type CipherMap = Dict[str, str]
type FrequencyMap = Dict[str, int]


class InvalidInput(ValueError):
    """A guess key or value outside A-Z."""


class PuzzleNotFound(IndexError):
    pass


class PuzzleLocked(RuntimeError):
    pass


class PassageLoadError(RuntimeError):
    pass


def is_letter(ch: str) -> bool:
    """True for a single ASCII letter, either case."""
    return ch in _LETTERS


def letters_only(text: str) -> str:
    """Drop every non-letter and upper-case the rest."""
    return "".join(ch for ch in text if is_letter(ch)).upper()


def normalize_letter(value: str | None, *, allow_empty: bool = False) -> str | None:
    """Return the upper-cased single letter, or None for an allowed empty value.

    Raises InvalidInput for anything else.
    """
    if value is None or value == "":
        if allow_empty:
            return None
        raise InvalidInput("a letter A-Z is required")
    if not isinstance(value, str) or not is_letter(value):
        raise InvalidInput(f"not a single letter A-Z: {value!r}")
    return value.upper()


def invert_map(cipher_map: Mapping[str, str]) -> CipherMap:
    return {v: k for k, v in cipher_map.items()}


def is_derangement(cipher_map: Mapping[str, str]) -> bool:
    """Check that the map is a bijection over A-Z with no fixed point."""
    if sorted(cipher_map.keys()) != list(ALPHABET):
        return False
    if sorted(cipher_map.values()) != list(ALPHABET):
        return False
    return all(k != v for k, v in cipher_map.items())


def distinct_vowels(text: str) -> List[str]:
    """Vowels present in the text, in canonical A, E, I, O, U order."""
    upper = text.upper()
    return [v for v in VOWELS if v in upper]


class PassageFile(BaseModel):
    id: int
    name: str
    text: str


_passage_list = TypeAdapter(List[PassageFile])


def _passages_from_data(data: bytes | str, source: str) -> List[Passage]:
    try:
        items = _passage_list.validate_json(data)
    except ValidationError as e:
        raise PassageLoadError(f"Invalid passages in {source}: {e}") from e
    if not items:
        raise PassageLoadError(f"No passages in {source}")
    ids = [p.id for p in items]
    if len(set(ids)) != len(ids):
        raise PassageLoadError(f"Duplicate passage ids in {source}")
    return [Passage(id=p.id, name=p.name, text=p.text) for p in items]


def load_passages(source: str) -> List[Passage]:
    """Load passage definitions from a JSON file path or an http(s) URL."""
    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=10)
        except requests.RequestException as e:
            raise PassageLoadError(f"Failed to get {source}: {e}") from e
        if response.status_code != 200:
            raise PassageLoadError(
                f"Failed to get {source}: {response.status_code} {response.text}"
            )
        return _passages_from_data(response.content, source)

    path = pathlib.Path(source)
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise PassageLoadError(f"Could not read {source}: {e}") from e
    return _passages_from_data(data, source)


def dump_passages(passages: Iterable[Passage]) -> str:
    """Render passages in the same JSON shape load_passages() reads."""
    return json.dumps(
        [{"id": p.id, "name": p.name, "text": p.text} for p in passages],
        indent=2,
    )
