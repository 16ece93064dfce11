"""
Exceptions raised by the solver and the benchmark harness.
"""


class InvalidInstance(ValueError):
    """Raised when an instance (or generator parameters) violates the QKP input domain."""


class InternalConsistencyError(RuntimeError):
    """Raised when a bound or reduction self-check fails.

    This always indicates a defect in the bound or reduction logic, never a
    data problem, and is not meant to be recovered from.
    """


class VerificationError(RuntimeError):
    """Raised when a reported solution fails independent re-checking."""
