"""
Exceptions raised by the Azul rules engine.

Configuration and move errors are recoverable: the state is left exactly as
it was before the call. ``IllegalStateError`` signals a sequencing bug in the
caller (for example refilling displays mid-round) and should not be retried.
"""


class AzulError(Exception):
    """Base class for all rules-engine errors."""


class InvalidConfigurationError(AzulError, ValueError):
    """Bad player count or malformed tile/color input."""


class IllegalMoveError(AzulError, ValueError):
    """A move that breaks the rules of Azul."""


class IllegalStateError(AzulError, RuntimeError):
    """An operation requested at a point in the round where it cannot happen."""
