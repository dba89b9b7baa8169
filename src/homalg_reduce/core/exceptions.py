class ReductionError(Exception):
    """
    Base class for failures inside the reduction engine.
    Any of these aborts the whole run: the matrices built so far cannot be
    trusted and are released by the caller that owns them.
    """


class ConsistencyError(ReductionError):
    """Row and column storage disagree, or a vector holds corrupt data."""


class DeletedVectorError(ConsistencyError):
    """A deleted (retired) row or column was searched or modified."""


class EntryOverflowError(ReductionError, OverflowError):
    """An entry's magnitude exceeded the configured bound."""

    def __init__(self, message: str, magnitude: int = 0, bound: int = 0):
        super().__init__(message)
        self.magnitude = magnitude
        self.bound = bound
