# errors.py
from __future__ import annotations


class MotionBridgeError(Exception):
    """Base class for write-path failures surfaced to the HTTP caller."""

    status_code = 400

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = str(self.args[0])

    @property
    def code(self) -> str:
        return self.__class__.__name__


class InvalidToken(MotionBridgeError):
    """Invalid token"""


class InvalidMotionData(MotionBridgeError):
    """x and y must be finite numbers"""


class TokenGenerationExhausted(MotionBridgeError):
    """Could not generate a unique token"""

    status_code = 503


class AtCapacity(MotionBridgeError):
    """Session store is full"""

    status_code = 503
