"""Session persistence: a JSON codec and the key-value stores it is written to.

The codec never raises on bad input. A missing or unreadable blob is the
NotFound outcome (None); a readable blob is merged field by field over a
freshly generated session, skipping whatever is missing or malformed.
"""
import json
import os
import pathlib
import re
import tempfile
from typing import Any, Dict, List, Optional, Protocol

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    NonNegativeInt,
    StrictInt,
    TypeAdapter,
    ValidationError,
)
from pydantic.alias_generators import to_camel

from osi_cryptogram.encoder import encode, frequency_map
from osi_cryptogram.models.puzzle import Passage, Puzzle
from osi_cryptogram.models.session_state import SessionState
from osi_cryptogram.solution_checker import is_solved
from osi_cryptogram.utils import InvalidInput, is_derangement

log = structlog.get_logger(__name__)


class KeyValueStore(Protocol):
    """Durable string store. Any call may raise; callers treat it as best-effort."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, for tests and throwaway sessions."""

    def __init__(self, data: Dict[str, str] | None = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """One <key>.json file per key inside a directory.

    Each call opens, reads or writes, and closes the file. Writes land in a
    temporary file first and are moved into place with os.replace().
    """

    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = pathlib.Path(directory)

    def path_for(self, key: str) -> pathlib.Path:
        if not _KEY_RE.match(key) or key in (".", ".."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except BaseException:
            pathlib.Path(tmp_path).unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


class _Persisted(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PersistedPuzzle(_Persisted):
    cipher_map: Dict[str, str]
    encrypted_text: str
    frequency_map: Optional[Dict[str, int]] = None


class PersistedSession(_Persisted):
    """The blob schema. Field aliases are the camelCase keys on disk."""

    current_puzzle_index: StrictInt
    guesses: Dict[int, Dict[str, str]]
    unlocked: List[int]
    hints_used: Dict[int, NonNegativeInt]
    solved: List[int]
    puzzles: List[Any]


# Built from the raw annotations so Strict/NonNegative constraints are kept.
_FIELD_ADAPTERS = {
    name: (info.alias or name, TypeAdapter(PersistedSession.__annotations__[name]))
    for name, info in PersistedSession.model_fields.items()
}


def solved_ids(state: SessionState) -> List[int]:
    return [
        puzzle.id
        for i, puzzle in enumerate(state.puzzles)
        if is_solved(puzzle, state.plaintext(i), state.guesses.guesses(puzzle.id))
    ]


def serialize(state: SessionState) -> str:
    """Encode the whole session as a JSON string."""
    blob = PersistedSession(
        current_puzzle_index=state.current_index,
        guesses=state.guesses.all_guesses(),
        unlocked=sorted(state.unlocked),
        hints_used=state.hints.all_hints_used(),
        solved=solved_ids(state),
        puzzles=[
            PersistedPuzzle(
                cipher_map=p.cipher_map,
                encrypted_text=p.encrypted_text,
                frequency_map=p.frequency_map,
            ).model_dump(by_alias=True)
            for p in state.puzzles
        ],
    )
    return blob.model_dump_json(by_alias=True)


def _restore_puzzle(raw: Any, passage: Passage) -> Optional[Puzzle]:
    """Accept a persisted puzzle only if it really encrypts this passage."""
    try:
        item = PersistedPuzzle.model_validate(raw)
    except ValidationError:
        return None
    if not is_derangement(item.cipher_map):
        return None
    if encode(passage.text, item.cipher_map).encrypted_text != item.encrypted_text:
        return None
    freq = frequency_map(item.encrypted_text)
    if item.frequency_map is not None and item.frequency_map != freq:
        log.debug("recomputing frequency map", puzzle_id=passage.id)
    return Puzzle(
        id=passage.id,
        name=passage.name,
        cipher_map=dict(item.cipher_map),
        encrypted_text=item.encrypted_text,
        frequency_map=freq,
    )


def _read_fields(raw: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    for name, (alias, adapter) in _FIELD_ADAPTERS.items():
        if alias not in raw:
            continue
        try:
            fields[name] = adapter.validate_python(raw[alias])
        except ValidationError:
            log.warning("skipping malformed persisted field", field=alias)
    return fields


def deserialize(blob: Optional[str], fresh: SessionState) -> Optional[SessionState]:
    """Merge a persisted blob over `fresh`, a newly generated session.

    Returns None when there is nothing usable: no blob, not JSON, not an
    object, or a current puzzle index that does not exist. `fresh` is only
    modified when a state is returned.
    """
    if blob is None:
        return None
    try:
        raw = json.loads(blob)
    except (TypeError, ValueError, RecursionError):
        log.warning("persisted state is not valid JSON")
        return None
    if not isinstance(raw, dict):
        log.warning("persisted state is not an object")
        return None

    fields = _read_fields(raw)
    state = fresh

    index = fields.get("current_puzzle_index")
    if index is not None and not 0 <= index < len(state.puzzles):
        log.warning("persisted puzzle index out of range", index=index)
        return None
    if index is not None:
        state.current_index = index

    restored = {}
    for i, item in enumerate(fields.get("puzzles", [])[: len(state.passages)]):
        puzzle = _restore_puzzle(item, state.passages[i])
        if puzzle is None:
            log.warning("skipping inconsistent persisted puzzle", position=i)
            continue
        state.puzzles[i] = puzzle
        restored[puzzle.id] = puzzle

    by_id = {p.id: p for p in state.puzzles}

    if "guesses" in fields:
        state.guesses.reset()
        for puzzle_id, mapping in fields["guesses"].items():
            # Guesses against a regenerated cipher are meaningless.
            puzzle = restored.get(puzzle_id)
            if puzzle is None:
                continue
            for cipher, plain in mapping.items():
                if cipher.upper() not in puzzle.frequency_map:
                    continue
                try:
                    state.guesses.set_guess(puzzle_id, cipher, plain)
                except InvalidInput:
                    continue

    if "unlocked" in fields:
        state.unlocked = {pid for pid in fields["unlocked"] if pid in by_id}

    if "hints_used" in fields:
        state.hints.load({pid: n for pid, n in fields["hints_used"].items() if pid in by_id})

    # Solved puzzles are always reachable again.
    state.unlocked.update(pid for pid in fields.get("solved", []) if pid in by_id)
    state.unlocked.add(state.current.id)

    return state


def read_blob(store: KeyValueStore, key: str) -> Optional[str]:
    """Best-effort read: storage failures come back as None."""
    try:
        return store.get(key)
    except Exception as e:
        log.warning("state read failed", key=key, error=str(e))
        return None


def write_blob(store: KeyValueStore, key: str, blob: str) -> bool:
    """Best-effort write: returns False instead of raising on failure."""
    try:
        store.set(key, blob)
        return True
    except Exception as e:
        log.warning("state write failed", key=key, error=str(e))
        return False


def remove_blob(store: KeyValueStore, key: str) -> bool:
    try:
        store.remove(key)
        return True
    except Exception as e:
        log.warning("state remove failed", key=key, error=str(e))
        return False
