from defuse import socketio
from defuse.services.games.engine import RoundEngine, GameState, LOST, TIME_LIMIT_MS, WON
from typing import Dict, List, Optional
import random
import string
import threading
import time

# Sessions only live as long as the process; nothing is written to disk.
_sessions: Dict[str, 'GameSession'] = {}


class GameSession:
    """One browser's game: intro screens, the engine and its timer handle.

    stage: intro -> rules -> active -> finished
    """

    def __init__(self, code: str, time_limit_ms: int = TIME_LIMIT_MS, rng: Optional[random.Random] = None):
        self.code = code
        self.stage = 'intro'
        self.engine = RoundEngine(
            time_limit_ms=time_limit_ms,
            rng=rng,
            on_render=self._emit_state,
            on_finish=self._handle_finish,
        )
        # Bumped on every cancellation; a timer worker only ticks while its epoch is current
        self.timer_epoch = 0
        self.owner_count = 0
        self.lock = threading.RLock()
        self.last_activity = time.time()

    @property
    def room(self) -> str:
        return f"game:{self.code}"

    def touch(self) -> None:
        self.last_activity = time.time()

    def cancel_timer(self) -> int:
        self.timer_epoch += 1
        return self.timer_epoch

    def broadcast(self) -> None:
        self._emit_state(self.engine.snapshot())

    def _emit_state(self, state: GameState) -> None:
        self.touch()
        if state.status in (WON, LOST):
            self.stage = 'finished'
        payload = {'game_code': self.code, 'stage': self.stage, 'state': state.to_dict()}
        socketio.emit('state_update', payload, to=self.room, namespace='/ws')

    def _handle_finish(self, won: bool, state: GameState) -> None:
        self.touch()
        self.stage = 'finished'
        self.cancel_timer()
        socketio.emit('game_over', {'game_code': self.code, 'won': won, 'state': state.to_dict()}, to=self.room, namespace='/ws')

    def to_dict(self):
        return {
            'game_code': self.code,
            'stage': self.stage,
            'state': self.engine.snapshot().to_dict(),
        }


def generate_session_code(length=4):
    """Generate a unique, short session code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in _sessions:
            return code


def create_session(time_limit_ms: int = TIME_LIMIT_MS, rng: Optional[random.Random] = None) -> GameSession:
    session = GameSession(generate_session_code(), time_limit_ms=time_limit_ms, rng=rng)
    _sessions[session.code] = session
    return session


def get_session(code: Optional[str]) -> Optional[GameSession]:
    if not code:
        return None
    session = _sessions.get(code.upper())
    if session:
        session.touch()
    return session


def remove_session(code: str) -> Optional[GameSession]:
    return _sessions.pop(code.upper(), None)


def idle_session_codes(max_idle_sec: float, now: Optional[float] = None) -> List[str]:
    """Codes of sessions nobody has touched for at least max_idle_sec."""
    now = time.time() if now is None else now
    return [code for code, s in list(_sessions.items()) if now - s.last_activity >= max_idle_sec]


def clear_sessions() -> None:
    _sessions.clear()
