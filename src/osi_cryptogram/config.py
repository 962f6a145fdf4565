import pathlib
from dataclasses import dataclass, field

import click

APP_NAME = "osi-cryptogram"
ENV_PREFIX = "OSI_CRYPTOGRAM"
STORAGE_KEY = "osi_cryptogram_v1"

# Declared limit. Hints are bounded by the passage's vowels unless the cap is enforced.
MAX_HINTS = 3


def default_state_dir() -> pathlib.Path:
    return pathlib.Path(click.get_app_dir(APP_NAME))


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Settings a session is built with."""

    unlock_all: bool = True
    max_hints: int = MAX_HINTS
    enforce_hint_cap: bool = False
    storage_key: str = STORAGE_KEY
    state_dir: pathlib.Path = field(default_factory=default_state_dir)
