from __future__ import annotations

"""Exception types raised by fungitrainer."""


class FungiTrainerError(Exception):
    """Base class for errors raised by this package."""


class ConfigError(FungiTrainerError):
    """Configuration file missing or unreadable."""


class HintStateError(FungiTrainerError):
    """A question's hint state machine was driven outside its contract."""


class SessionError(FungiTrainerError):
    """A study session was used out of order (e.g. submit with no question)."""
