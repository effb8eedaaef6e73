from defuse import socketio
from defuse.errors import DefuseError
from defuse.models import GameSession, idle_session_codes, remove_session
from .engine import Outcome
from .scheduler import cancel_tick_timer, schedule_tick_timer
import time

_last_controller_action: dict[str, float] = {}


def is_debounced(app, action: str, game_code: str) -> bool:
    try:
        debounce_ms = int(app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{action}:{game_code.upper()}"
    now = time.time() * 1000.0
    last = _last_controller_action.get(key, 0)
    if now - last < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False


def advance_session(app, session: GameSession) -> GameSession:
    """Confirm action: intro -> rules -> active. Ignored once a game is running."""
    with session.lock:
        if session.stage == 'intro':
            session.stage = 'rules'
            app.logger.info(f"[advance] game={session.code} intro -> rules")
            session.broadcast()
        elif session.stage == 'rules':
            app.logger.info(f"[advance] game={session.code} rules -> active")
            _start_game(app, session)
        else:
            app.logger.debug(f"[advance-skip] game={session.code} stage={session.stage}")
    return session


def select_number(session: GameSession, number: int) -> Outcome:
    with session.lock:
        return session.engine.select(number)


def restart_session(app, session: GameSession) -> GameSession:
    with session.lock:
        if session.stage not in ('active', 'finished'):
            raise DefuseError('Game has not started yet')
        cancel_tick_timer(app, session)
        app.logger.info(f"[restart] game={session.code} from stage={session.stage}")
        _start_game(app, session)
    return session


def end_session(app, game_code: str) -> bool:
    """Tear down a session: stop its clock and tell connected clients."""
    session = remove_session(game_code)
    if session is None:
        return False
    session.cancel_timer()
    for action in ('advance', 'restart'):
        _last_controller_action.pop(f"{action}:{session.code}", None)
    socketio.emit('session_ended', {'game_code': session.code}, to=session.room, namespace='/ws')
    app.logger.info(f"[session-end] game={session.code} stage={session.stage}")
    return True


def evict_idle_sessions(app) -> int:
    """End every session left untouched for SESSION_IDLE_SEC. Returns how many went."""
    max_idle = float(app.config.get('SESSION_IDLE_SEC', 900))
    evicted = 0
    for code in idle_session_codes(max_idle):
        if end_session(app, code):
            evicted += 1
    if evicted:
        app.logger.info(f"[evict] sessions={evicted} idle_sec={max_idle}")
    return evicted


def _start_game(app, session: GameSession) -> None:
    session.stage = 'active'
    session.engine.start_game()
    schedule_tick_timer(app, session.code)
