from contextlib import contextmanager
from typing import List

from fastapi import APIRouter, FastAPI, HTTPException
import structlog

from osi_cryptogram.api import models
from osi_cryptogram.session import CryptogramSession
from osi_cryptogram.utils import PuzzleLocked, PuzzleNotFound

log = structlog.get_logger(__name__)


@contextmanager
def session_errors():
    """Map session lookup and lock errors onto HTTP status codes."""
    try:
        yield
    except PuzzleNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PuzzleLocked as e:
        raise HTTPException(status_code=403, detail=str(e))


def create_app(session: CryptogramSession) -> FastAPI:
    """Build the API around one session. Every route reads or acts on it."""
    app = FastAPI(title="OSI Cryptogram")
    router = APIRouter()

    @router.get("/state", response_model=models.StateResponse)
    def get_state():
        return models.StateResponse.from_snapshot(session.snapshot())

    @router.get("/puzzles", response_model=List[models.PuzzleResponse])
    def list_puzzles():
        return [models.PuzzleResponse.from_view(v) for v in session.snapshot().puzzles]

    @router.get("/puzzles/{index}", response_model=models.PuzzleResponse)
    def get_puzzle(index: int):
        with session_errors():
            return models.PuzzleResponse.from_view(session.get_puzzle(index))

    @router.put("/puzzles/{index}/guesses/{cipher}", response_model=models.PuzzleResponse)
    def put_guess(index: int, cipher: str, req: models.GuessRequest):
        with session_errors():
            if not session.set_guess(cipher, req.plain, index):
                raise HTTPException(status_code=422, detail=f"Invalid guess {cipher!r} -> {req.plain!r}")
            return models.PuzzleResponse.from_view(session.get_puzzle(index))

    @router.delete("/puzzles/{index}/guesses/{cipher}", response_model=models.PuzzleResponse)
    def delete_guess(index: int, cipher: str):
        with session_errors():
            if not session.clear_guess(cipher, index):
                raise HTTPException(status_code=422, detail=f"Not a cipher letter in this puzzle: {cipher!r}")
            return models.PuzzleResponse.from_view(session.get_puzzle(index))

    @router.delete("/puzzles/{index}/guesses", response_model=models.PuzzleResponse)
    def delete_guesses(index: int):
        with session_errors():
            session.clear_all(index)
            return models.PuzzleResponse.from_view(session.get_puzzle(index))

    @router.post("/puzzles/{index}/hint", response_model=models.HintResponse)
    def hint(index: int):
        with session_errors():
            result = session.request_hint(index)
            log.info("hint requested", index=index, result=type(result).__name__)
            return models.HintResponse.from_result(result, session.get_puzzle(index))

    @router.post("/puzzles/{index}/check", response_model=models.CheckResponse)
    def check(index: int):
        with session_errors():
            return models.CheckResponse.from_result(session.check_answer(index))

    @router.post("/switch/{index}", response_model=models.PuzzleResponse)
    def switch(index: int):
        with session_errors():
            return models.PuzzleResponse.from_view(session.switch_puzzle(index))

    @router.post("/next", response_model=models.NextResponse)
    def next_unsolved():
        view = session.next_unsolved()
        if view is None:
            return models.NextResponse(all_solved=True)
        return models.NextResponse(all_solved=False, puzzle=models.PuzzleResponse.from_view(view))

    @router.post("/restart", response_model=models.StateResponse)
    def restart(regenerate: bool = False):
        session.restart_all(regenerate=regenerate)
        return models.StateResponse.from_snapshot(session.snapshot())

    app.include_router(router, prefix="/api")
    return app
