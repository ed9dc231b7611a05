"""Typed rejections raised by the game engine.

Every error here is recoverable: the round that was being acted upon is left
exactly as it was, and the caller decides what to tell the player.
"""

from decimal import Decimal


class EngineError(Exception):
    """Base class for all engine rejections."""

    code = "engine_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidBetError(EngineError):
    """Bet below the minimum, above the bankroll, or not a whole unit."""

    code = "invalid_bet"

    def __init__(self, message: str, amount: Decimal | int | float | None = None) -> None:
        super().__init__(message)
        self.amount = amount


class IllegalActionError(EngineError):
    """Action not permitted in the current phase or for the active hand."""

    code = "illegal_action"

    def __init__(self, action: str, phase: str, reason: str | None = None) -> None:
        message = f"Cannot {action} during {phase}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.action = action
        self.phase = phase


class InsufficientFundsError(EngineError):
    """Double, split or insurance requested without enough bankroll."""

    code = "insufficient_funds"

    def __init__(self, action: str, required: Decimal, available: Decimal) -> None:
        super().__init__(f"Not enough funds to {action}: need {required}, have {available}")
        self.action = action
        self.required = required
        self.available = available


class EmptyShoeError(EngineError):
    """Draw attempted on an empty shoe."""

    code = "empty_shoe"

    def __init__(self) -> None:
        super().__init__("Cannot draw from empty shoe")
