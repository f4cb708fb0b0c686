"""Exceptions raised by the tracker."""


class TrackerError(Exception):
    """Base exception for the tracker."""
    pass


class InvalidTransaction(TrackerError, ValueError):
    """Malformed transaction: non-positive shares, negative price, empty symbol or unknown action."""
    pass


class InconsistentState(TrackerError, RuntimeError):
    """A position invariant does not hold after a replay step."""
    pass


class QuoteSourceError(TrackerError):
    """The quote source could not deliver prices."""
    pass
