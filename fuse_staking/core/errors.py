"""Exception types for the staking pool.

Every failure aborts the whole operation; the service layer rolls back any
partial mutation before re-raising. Callers are expected to fix the cause
(raise the limit, add a validator, ...) and resubmit.
"""

from __future__ import annotations


class PoolError(Exception):
    """Base class for every rejected pool operation."""


class AuthorizationError(PoolError):
    """Raised when the caller is not the pool owner."""


class PreconditionError(PoolError):
    """Raised when the pool is in the wrong state for the requested operation."""


class NotInitializedError(PreconditionError):
    pass


class AlreadyInitializedError(PreconditionError):
    pass


class ReentrancyError(PreconditionError):
    """Raised when a withdrawal is attempted while another one is in flight."""


class CapacityError(PoolError):
    """Raised when validators cannot absorb (or return) the requested amount."""


class ConfigurationError(PoolError):
    """Raised for out-of-range or no-op configuration changes."""


class TransferError(PoolError):
    """Raised when a claim-token or base-asset transfer reports failure."""


class PoolInvariantError(PoolError):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
