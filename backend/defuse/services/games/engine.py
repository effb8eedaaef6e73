"""Round engine: owns a single game's state and applies the rules to it."""

import enum
import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from defuse.errors import GameNotActive, InvalidSelection
from .rules import (
    apply_operation,
    generate_round_candidates,
    pick_operator,
    preview_next_operator,
)

logger = logging.getLogger(__name__)

TIME_LIMIT_MS = 120000
TICK_MS = 1000
WARNING_THRESHOLD_SEC = 30
START_RANGE = (1, 50)
TARGET_RANGE = (1, 99)


class Outcome(str, enum.Enum):
    CONTINUE = 'continue'
    WIN = 'win'
    LOSS = 'loss'


IDLE = 'idle'
ACTIVE = 'active'
WON = 'won'
LOST = 'lost'


@dataclass(frozen=True)
class GameState:
    status: str
    current_number: Optional[int]
    target_number: Optional[int]
    current_operator: Optional[str]
    next_operator: Optional[str]
    time_remaining_ms: int
    candidates: Tuple[int, ...]

    @property
    def active(self) -> bool:
        return self.status == ACTIVE

    @property
    def timer_display(self) -> str:
        seconds = math.ceil(self.time_remaining_ms / 1000)
        return f"{seconds // 60}:{seconds % 60:02d}"

    @property
    def time_warning(self) -> bool:
        return math.ceil(self.time_remaining_ms / 1000) <= WARNING_THRESHOLD_SEC

    def to_dict(self):
        return {
            'status': self.status,
            'active': self.active,
            'current_number': self.current_number,
            'target_number': self.target_number,
            'current_operator': self.current_operator,
            'next_operator': self.next_operator,
            'time_remaining_ms': self.time_remaining_ms,
            'timer_display': self.timer_display,
            'time_warning': self.time_warning,
            'candidates': list(self.candidates),
        }


RenderCallback = Callable[[GameState], None]
FinishCallback = Callable[[bool, GameState], None]


class RoundEngine:
    """Single-player game state machine: idle -> active -> won | lost.

    Mutation only happens through ``start_game``, ``tick`` and ``select``.
    ``on_render`` is called after every state change with a fresh snapshot,
    ``on_finish`` once per game when it is won or lost.
    """

    def __init__(self, time_limit_ms: int = TIME_LIMIT_MS,
                 rng: Optional[random.Random] = None,
                 on_render: Optional[RenderCallback] = None,
                 on_finish: Optional[FinishCallback] = None):
        self.time_limit_ms = int(time_limit_ms)
        self.rng = rng or random.Random()
        self.on_render = on_render
        self.on_finish = on_finish
        self._reset()

    def _reset(self) -> None:
        self.status = IDLE
        self.current_number: Optional[int] = None
        self.target_number: Optional[int] = None
        self.current_operator: Optional[str] = None
        self.next_operator: Optional[str] = None
        self.time_remaining_ms = 0
        self.candidates: Tuple[int, ...] = ()

    @property
    def active(self) -> bool:
        return self.status == ACTIVE

    @property
    def outcome(self) -> Outcome:
        if self.status == WON:
            return Outcome.WIN
        if self.status == LOST:
            return Outcome.LOSS
        return Outcome.CONTINUE

    def snapshot(self) -> GameState:
        return GameState(
            status=self.status,
            current_number=self.current_number,
            target_number=self.target_number,
            current_operator=self.current_operator,
            next_operator=self.next_operator,
            time_remaining_ms=self.time_remaining_ms,
            candidates=self.candidates,
        )

    def start_game(self) -> GameState:
        self._reset()
        self.current_number = self.rng.randint(*START_RANGE)
        self.target_number = self.rng.randint(*TARGET_RANGE)
        while self.target_number == self.current_number:
            self.target_number = self.rng.randint(*TARGET_RANGE)
        self.time_remaining_ms = self.time_limit_ms
        self.current_operator = pick_operator(self.current_number, self.target_number, self.rng)
        self.status = ACTIVE
        logger.info(
            f"[game-start] current={self.current_number} target={self.target_number} "
            f"operator={self.current_operator} time_ms={self.time_remaining_ms}"
        )
        self._build_round()
        self._render()
        return self.snapshot()

    def tick(self) -> Outcome:
        """Advance the clock by one second. No-op once the game is over."""
        if not self.active:
            return self.outcome
        self.time_remaining_ms = max(0, self.time_remaining_ms - TICK_MS)
        if self.time_remaining_ms <= 0:
            self._finish(won=False)
            return Outcome.LOSS
        self._render()
        return Outcome.CONTINUE

    def select(self, number: int) -> Outcome:
        if not self.active:
            raise GameNotActive(self.status)
        if not isinstance(number, int) or isinstance(number, bool) or number not in self.candidates:
            raise InvalidSelection(number, self.candidates)

        previous = self.current_number
        self.current_number = apply_operation(previous, self.current_operator, number)
        logger.debug(
            f"[select] {previous} {self.current_operator} {number} = {self.current_number} "
            f"target={self.target_number}"
        )
        if self.current_number == self.target_number:
            self._finish(won=True)
            return Outcome.WIN

        self.current_operator = self.next_operator
        self._build_round()
        self._render()
        return Outcome.CONTINUE

    def _build_round(self) -> None:
        self.candidates = tuple(generate_round_candidates(
            self.current_number, self.current_operator, self.target_number, self.rng
        ))
        self.next_operator = preview_next_operator(
            self.current_number, self.current_operator, self.candidates, self.target_number, self.rng
        )
        logger.debug(
            f"[round] current={self.current_number} operator={self.current_operator} "
            f"candidates={list(self.candidates)} next={self.next_operator}"
        )

    def _finish(self, won: bool) -> None:
        self.status = WON if won else LOST
        logger.info(
            f"[game-over] won={won} current={self.current_number} target={self.target_number} "
            f"time_ms={self.time_remaining_ms}"
        )
        self._render()
        if self.on_finish:
            self.on_finish(won, self.snapshot())

    def _render(self) -> None:
        if self.on_render:
            self.on_render(self.snapshot())
