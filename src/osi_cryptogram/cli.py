import pathlib
import random
from dataclasses import dataclass
from typing import Optional, Sequence

import click
from rich.console import Console

from osi_cryptogram.config import ENV_PREFIX, MAX_HINTS, EngineConfig, default_state_dir
from osi_cryptogram.content import DEFAULT_PASSAGES
from osi_cryptogram.log import configure_logging
from osi_cryptogram.models.puzzle import Passage, Solved
from osi_cryptogram.persistence import JsonFileStore
from osi_cryptogram.session import CryptogramSession
from osi_cryptogram.state_queue import SingleSlotQueue
from osi_cryptogram.state_snapshot import SessionSnapshot
from osi_cryptogram.ui import describe_check, describe_hint, render
from osi_cryptogram.utils import (
    PassageLoadError,
    PuzzleLocked,
    PuzzleNotFound,
    dump_passages,
    load_passages,
)

PLAY_HELP = """Commands:
  Q A        guess that cipher letter Q is plaintext A (also "Q=A")
  Q -        clear the guess for Q (also "Q=")
  hint       reveal a vowel
  check      check the answer
  switch N   open puzzle N
  next       open the first unsolved puzzle
  clear      clear every guess on this puzzle
  restart    start over
  help       show this text
  quit       leave (progress is saved)"""

ALL_SOLVED = "Every puzzle is solved. Congratulations!"


@dataclass
class CliContext:
    config: EngineConfig
    passages: Sequence[Passage]
    seed: Optional[int]
    console: Console

    def session(self, snapshots: Optional[SingleSlotQueue[SessionSnapshot]] = None) -> CryptogramSession:
        return CryptogramSession(
            self.passages,
            store=JsonFileStore(self.config.state_dir),
            rng=random.Random(self.seed) if self.seed is not None else None,
            config=self.config,
            snapshots=snapshots,
        )


pass_context = click.make_pass_decorator(CliContext)


@click.group(context_settings={"auto_envvar_prefix": ENV_PREFIX})
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False, path_type=pathlib.Path),
    default=default_state_dir,
    show_default="app dir",
    help="Directory holding the saved session.",
)
@click.option("--passages", "passages_source", default=None, help="JSON file or http(s) URL with [{id, name, text}].")
@click.option("--seed", type=int, default=None, help="Seed for cipher generation.")
@click.option("--unlock-all/--locked-levels", default=True, help="Open every puzzle, or unlock them in order.")
@click.option("--max-hints", type=click.IntRange(min=0), default=MAX_HINTS, show_default=True)
@click.option("--enforce-hint-cap", is_flag=True, help="Stop hints at --max-hints per puzzle.")
@click.option("-v", "--verbose", count=True, help="-v for info logs, -vv for debug.")
@click.option("--json-logs", is_flag=True, help="Log as JSON lines.")
@click.pass_context
def cli(
    ctx: click.Context,
    state_dir: pathlib.Path,
    passages_source: Optional[str],
    seed: Optional[int],
    unlock_all: bool,
    max_hints: int,
    enforce_hint_cap: bool,
    verbose: int,
    json_logs: bool,
):
    """Solve the OSI-layer cryptograms."""
    configure_logging(verbose, json_logs)

    passages: Sequence[Passage] = DEFAULT_PASSAGES
    if passages_source:
        try:
            passages = load_passages(passages_source)
        except PassageLoadError as e:
            raise click.ClickException(str(e))

    ctx.obj = CliContext(
        config=EngineConfig(
            unlock_all=unlock_all,
            max_hints=max_hints,
            enforce_hint_cap=enforce_hint_cap,
            state_dir=state_dir,
        ),
        passages=passages,
        seed=seed,
        console=Console(),
    )


@cli.command()
@pass_context
def show(obj: CliContext):
    """Show the current puzzle."""
    obj.console.print(render(obj.session().snapshot()))


@cli.command()
@click.argument("cipher_letter")
@click.argument("plain_letter")
@pass_context
def guess(obj: CliContext, cipher_letter: str, plain_letter: str):
    """Guess that CIPHER_LETTER decodes to PLAIN_LETTER."""
    session = obj.session()
    if not session.set_guess(cipher_letter, plain_letter):
        raise click.ClickException(f"Not recorded: {cipher_letter!r} -> {plain_letter!r}")
    obj.console.print(render(session.snapshot()))
    if session.check_solved():
        obj.console.print(describe_check(session.check_answer()))


@cli.command()
@click.argument("cipher_letter", required=False)
@pass_context
def clear(obj: CliContext, cipher_letter: Optional[str]):
    """Clear one guess, or every guess on the current puzzle."""
    session = obj.session()
    if cipher_letter is None:
        session.clear_all()
    elif not session.clear_guess(cipher_letter):
        raise click.ClickException(f"Not a cipher letter in this puzzle: {cipher_letter!r}")
    obj.console.print(render(session.snapshot()))


@cli.command()
@pass_context
def hint(obj: CliContext):
    """Reveal one vowel on the current puzzle."""
    session = obj.session()
    result = session.request_hint()
    obj.console.print(render(session.snapshot()))
    obj.console.print(describe_hint(result))


@cli.command()
@pass_context
def check(obj: CliContext):
    """Check the current answer. Exits 1 when wrong."""
    result = obj.session().check_answer()
    obj.console.print(describe_check(result))
    if not isinstance(result, Solved):
        raise SystemExit(1)


@cli.command()
@click.argument("index", type=int)
@pass_context
def switch(obj: CliContext, index: int):
    """Open puzzle INDEX (0-based) on an empty grid."""
    session = obj.session()
    try:
        session.switch_puzzle(index)
    except (PuzzleNotFound, PuzzleLocked) as e:
        raise click.ClickException(str(e))
    obj.console.print(render(session.snapshot()))


@cli.command("next")
@pass_context
def next_unsolved(obj: CliContext):
    """Open the first unsolved puzzle, unlocking it if needed."""
    session = obj.session()
    if session.next_unsolved() is None:
        obj.console.print(ALL_SOLVED)
        return
    obj.console.print(render(session.snapshot()))


@cli.command()
@click.option("--regenerate", is_flag=True, help="Draw new ciphers too.")
@click.confirmation_option(prompt="Drop all progress?")
@pass_context
def restart(obj: CliContext, regenerate: bool):
    """Clear every guess and hint counter and start at puzzle 0."""
    session = obj.session()
    session.restart_all(regenerate=regenerate)
    click.echo("Progress cleared.")


@cli.command()
@pass_context
def export(obj: CliContext):
    """Print the saved session blob."""
    click.echo(obj.session().serialize())


@cli.command()
@pass_context
def passages(obj: CliContext):
    """Print the passages in the --passages file format."""
    click.echo(dump_passages(obj.passages))


def run_play_command(session: CryptogramSession, line: str) -> Optional[str]:
    """Apply one play-loop line. Returns a message, or None to quit."""
    parts = line.replace("=", " = ").split()
    if not parts:
        return ""
    word = parts[0].lower()

    if word in ("quit", "exit"):
        return None
    if word in ("help", "?"):
        return PLAY_HELP
    if word == "hint":
        return describe_hint(session.request_hint())
    if word == "check":
        return describe_check(session.check_answer())
    if word == "clear":
        session.clear_all()
        return "Cleared."
    if word == "restart":
        session.restart_all()
        return "Progress cleared."
    if word == "next":
        return "" if session.next_unsolved() is not None else ALL_SOLVED
    if word == "switch":
        if len(parts) != 2 or not parts[1].lstrip("-").isdigit():
            return "Usage: switch N"
        try:
            session.switch_puzzle(int(parts[1]))
        except (PuzzleNotFound, PuzzleLocked) as e:
            return str(e)
        return ""

    args = [p for p in parts if p != "="]
    if len(args) == 1 and len(args[0]) == 2:
        args = [args[0][0], args[0][1]]
    if len(args) == 1 or (len(args) == 2 and args[1] == "-"):
        ok = session.clear_guess(args[0])
    elif len(args) == 2:
        ok = session.set_guess(args[0], args[1])
    else:
        return f"Unknown command: {line.strip()} (try help)"
    if not ok:
        return "Not recorded."
    if session.check_solved():
        return describe_check(session.check_answer())
    return ""


@cli.command()
@pass_context
def play(obj: CliContext):
    """Interactive play loop."""
    snapshots: SingleSlotQueue[SessionSnapshot] = SingleSlotQueue()
    session = obj.session(snapshots)
    obj.console.print(render(snapshots.poll()))
    obj.console.print(PLAY_HELP, style="dim")

    while True:
        try:
            line = click.prompt(">", prompt_suffix=" ", default="", show_default=False)
        except (click.Abort, EOFError):
            break
        message = run_play_command(session, line)
        if message is None:
            break
        latest = snapshots.poll()
        if latest is not None:
            obj.console.print(render(latest))
        if message:
            obj.console.print(message)

    snapshots.close()
    obj.console.print("Progress saved.", style="dim")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to bind the server to")
@pass_context
def serve(obj: CliContext, host: str, port: int):
    """Serve this session over a local HTTP API."""
    import uvicorn

    from osi_cryptogram.api.app import create_app

    app = create_app(obj.session())
    click.echo(f"Serving the cryptogram on http://{host}:{port}/api/state")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
