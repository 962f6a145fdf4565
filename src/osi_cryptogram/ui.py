from typing import List, Literal, Optional, Tuple

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from osi_cryptogram.models.puzzle import CheckResult, HintResult, NoHintsRemain, Revealed, Solved
from osi_cryptogram.state_snapshot import PuzzleView, SessionSnapshot
from osi_cryptogram.utils import is_letter

COLORS = {
    "cipher": "bold cyan",
    "guess": "bold green",
    "empty": "dim",
    "conflict": "bold white on red",
    "punctuation": "dim white",
    "level": {
        "current": "bold yellow",
        "solved": "spring_green2",
        "open": "white",
        "locked": "dim",
    },
}

type LevelState = Literal["current", "solved", "open", "locked"]

EMPTY_GUESS = "_"
LINE_WIDTH = 64


def level_state(view: PuzzleView, current_index: int) -> LevelState:
    if view.index == current_index:
        return "current"
    if view.progress.solved:
        return "solved"
    if view.progress.unlocked:
        return "open"
    return "locked"


def render_levels(snapshot: SessionSnapshot) -> Text:
    """One line listing every puzzle, styled by state."""
    text = Text()
    for view in snapshot.puzzles:
        state = level_state(view, snapshot.current_index)
        marker = {"solved": " ✓", "locked": " (locked)"}.get(state, "")
        if text:
            text.append("  ")
        text.append(f"{view.index}. {view.name}{marker}", style=COLORS["level"][state])
    return text


def wrap_words(encrypted_text: str, width: int = LINE_WIDTH) -> List[List[str]]:
    """Group whitespace-separated words into lines so no word is split."""
    lines: List[List[str]] = [[]]
    used = 0
    for word in encrypted_text.split():
        needed = len(word) + (1 if lines[-1] else 0)
        if lines[-1] and used + needed > width:
            lines.append([])
            used = 0
            needed = len(word)
        lines[-1].append(word)
        used += needed
    return lines if lines[0] else []


def render_line(words: List[str], view: PuzzleView) -> Tuple[Text, Text]:
    """Cipher letters on top, current guesses underneath."""
    conflicts = view.conflicting_ciphers
    top, bottom = Text(), Text()
    for n, word in enumerate(words):
        if n:
            top.append("  ")
            bottom.append("  ")
        for ch in word:
            if not is_letter(ch):
                top.append(f"{ch} ", style=COLORS["punctuation"])
                bottom.append(f"{ch} ", style=COLORS["punctuation"])
                continue
            cipher = ch.upper()
            guess = view.guesses.get(cipher)
            top.append(f"{cipher} ", style=COLORS["conflict"] if cipher in conflicts else COLORS["cipher"])
            if guess is None:
                bottom.append(f"{EMPTY_GUESS} ", style=COLORS["empty"])
            else:
                bottom.append(f"{guess} ", style=COLORS["conflict"] if cipher in conflicts else COLORS["guess"])
    return top, bottom


def render_grid(view: PuzzleView, width: int = LINE_WIDTH) -> Table:
    grid = Table.grid(padding=(0, 0))
    grid.add_column(no_wrap=True, overflow="crop")
    for words in wrap_words(view.encrypted_text, width // 2):
        top, bottom = render_line(words, view)
        grid.add_row(top)
        grid.add_row(bottom)
        grid.add_row("")
    return grid


def render_frequency(view: PuzzleView) -> Table:
    """Ciphertext letters by frequency, conflicting letters highlighted."""
    conflicts = view.conflicting_ciphers
    table = Table(show_header=False, show_edge=False, padding=(0, 1))
    order = view.frequency_order()
    for _ in order:
        table.add_column(justify="center", no_wrap=True)
    letters, counts, guesses = [], [], []
    for cipher, count in order:
        style = COLORS["conflict"] if cipher in conflicts else COLORS["cipher"]
        letters.append(Text(cipher, style=style))
        counts.append(Text(str(count), style="dim"))
        guesses.append(Text(view.guesses.get(cipher, EMPTY_GUESS), style=COLORS["guess"]))
    if order:
        table.add_row(*letters)
        table.add_row(*counts)
        table.add_row(*guesses)
    return table


def render_status(view: PuzzleView) -> Text:
    p = view.progress
    status = Text()
    status.append(f"{p.letters_guessed}/{p.letters_total} letters guessed", style="bold")
    status.append(f"  |  {view.hints_remaining} vowel hints left")
    status.append(f"  |  hints used: {p.hints_used}")
    if view.conflicts:
        listed = ", ".join(f"{plain}←{'/'.join(sorted(c))}" for plain, c in sorted(view.conflicts.items()))
        status.append(f"  |  conflicts: {listed}", style="red")
    if p.solved:
        status.append("  |  SOLVED", style=COLORS["level"]["solved"])
    return status


def render(snapshot: Optional[SessionSnapshot]):
    """Render the session snapshot."""
    if snapshot is None:
        return Panel("Waiting for the session…", title="Cryptogram", border_style="dim")

    view = snapshot.current
    body = Group(
        render_levels(snapshot),
        Text(""),
        render_grid(view),
        Panel(render_frequency(view), title="Frequency", padding=(0, 1)),
        render_status(view),
    )
    title = f"{view.id}. {view.name}  |  v{snapshot.state_version}"
    border = COLORS["level"]["solved"] if view.progress.solved else "cyan"
    return Panel(body, title=title, border_style=border)


def describe_hint(result: HintResult) -> str:
    if isinstance(result, Revealed):
        return f"Vowel revealed: {result.vowel}"
    if isinstance(result, NoHintsRemain) and result.reason == "cap":
        return "Hint limit reached"
    return "No unrevealed vowels remain"


def describe_check(result: CheckResult) -> str:
    if isinstance(result, Solved):
        return f"Correct!\n\n{result.plaintext}"
    return f"Wrong answer ({result.letters_guessed}/{result.letters_total} letters guessed)"
