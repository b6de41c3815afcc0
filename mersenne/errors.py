"""
Exception hierarchy for the Mersenne search.

Queue operations and the primality pipeline never fail on valid input; the
exceptions below only surface for configuration problems and for the
opt-in timeout/cancellation paths used during shutdown.
"""


class MersenneSearchError(Exception):
    """Base class for all search errors."""


class ConfigurationError(MersenneSearchError):
    """Raised when configuration values are missing or out of range."""


class QueueTimeout(MersenneSearchError):
    """Raised when a bounded wait on the task queue elapses."""


class PipelineCancelled(MersenneSearchError):
    """Raised when a primality check is aborted through its cancel token."""

    def __init__(self, exponent: int, stage: str):
        super().__init__(f"Check of M{exponent} cancelled during {stage}")
        self.exponent = exponent
        self.stage = stage
