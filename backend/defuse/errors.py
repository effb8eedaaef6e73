"""Errors raised by the round engine and translated by the transport layers."""


class DefuseError(Exception):
    """Base class for game rule violations."""


class InvalidSelection(DefuseError):
    """The chosen number is not one of the current round's candidates."""

    def __init__(self, number, candidates):
        self.number = number
        self.candidates = tuple(candidates)
        super().__init__(f"{number!r} is not one of the offered numbers {list(self.candidates)}")


class GameNotActive(DefuseError):
    """A move was attempted while no game is running."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"No active game (status={status})")
