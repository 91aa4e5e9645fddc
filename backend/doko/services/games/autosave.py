"""Debounced, fire-and-forget persistence of game states.

Each mutation calls ``schedule_save``; only the newest request per game
inside the debounce window writes. Failures are logged and never reach the
request that triggered them.
"""

from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from doko import db, socketio
from doko.storage import GameStore
from .session import peek_game, storage_key

# game id -> generation of the newest pending save
_pending: Dict[str, int] = {}


def save_now(app, game_id: str) -> bool:
    with app.app_context():
        state = peek_game(game_id)
        if state is None:
            return False
        try:
            GameStore().save(storage_key(game_id), state.model_dump(mode='json'))
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception(f"[autosave-failed] game={game_id}")
            return False
        app.logger.info(f"[autosave] game={game_id} rounds={len(state.rounds)}")
        return True


def schedule_save(app, game_id: str) -> None:
    """Persist the current state of ``game_id`` after the debounce delay.

    - Saves synchronously in TESTING or when SAVE_DEBOUNCE_MS is 0
    - A later call for the same game supersedes an earlier pending one
    """
    try:
        delay_ms = int(app.config.get('SAVE_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        delay_ms = 0
    if app.config.get('TESTING') or delay_ms <= 0:
        save_now(app, game_id)
        return

    generation = _pending.get(game_id, 0) + 1
    _pending[game_id] = generation

    def _worker(gid: str, expected: int, delay: float):
        socketio.sleep(delay)
        if _pending.get(gid) != expected:
            app.logger.debug(f"[autosave-skip] game={gid} superseded")
            return
        _pending.pop(gid, None)
        save_now(app, gid)

    socketio.start_background_task(_worker, game_id, generation, delay_ms / 1000.0)


def cancel_pending(game_id: str) -> None:
    _pending.pop(game_id, None)
