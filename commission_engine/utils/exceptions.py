"""
Commission engine exceptions.

Three families let callers tell bad input, an operation that was already
done, and a misconfigured system apart:
- InvalidInputError: fix the request and try again
- StateConflictError: nothing happened, the target state already holds
  or the transition is not allowed
- ConfigurationError: operator action required
"""


class CommissionEngineError(Exception):
    """Base class for all commission engine errors."""


# Validation


class InvalidInputError(CommissionEngineError):
    """Raised when input is rejected before any persistence."""


class NotFoundError(InvalidInputError):
    """Raised when a referenced entity does not exist."""


class AffiliateNotFoundError(NotFoundError):
    """Raised when an affiliate does not exist."""

    def __init__(self, affiliate_id: int | str) -> None:
        super().__init__(f"Affiliate {affiliate_id} not found")
        self.affiliate_id = affiliate_id


class SaleNotFoundError(NotFoundError):
    """Raised when a sale does not exist."""

    def __init__(self, sale_id: int) -> None:
        super().__init__(f"Sale {sale_id} not found")
        self.sale_id = sale_id


# State conflicts


class StateConflictError(CommissionEngineError):
    """Raised when an operation does not apply to the current state."""


class DuplicateReferenceError(StateConflictError):
    """Raised when a sale reference is already recorded."""

    def __init__(self, sale_reference: str) -> None:
        super().__init__(f"Sale reference {sale_reference!r} already exists")
        self.sale_reference = sale_reference


class InactiveAffiliateError(StateConflictError):
    """Raised when an inactive affiliate is used for a new sale or referral."""

    def __init__(self, affiliate_id: int) -> None:
        super().__init__(f"Affiliate {affiliate_id} is not active")
        self.affiliate_id = affiliate_id


class NotVerifiedError(StateConflictError):
    """Raised when commissions are requested for an unverified sale."""

    def __init__(self, sale_id: int, status: str) -> None:
        super().__init__(
            f"Sale {sale_id} must be VERIFIED (current status: {status})"
        )
        self.sale_id = sale_id
        self.status = status


class SaleAlreadyVerifiedError(StateConflictError):
    """Raised when verifying a sale that left PENDING."""

    def __init__(self, sale_id: int, status: str) -> None:
        super().__init__(f"Sale {sale_id} is already {status}")
        self.sale_id = sale_id
        self.status = status


class AlreadyDistributedError(StateConflictError):
    """Raised when commissions for a sale already exist."""

    def __init__(self, sale_id: int, message: str | None = None) -> None:
        super().__init__(
            message or f"Commissions already distributed for sale {sale_id}"
        )
        self.sale_id = sale_id


class ConcurrentDistributionError(AlreadyDistributedError):
    """Raised when another transaction distributed the sale first."""

    def __init__(self, sale_id: int) -> None:
        super().__init__(
            sale_id,
            f"Commissions for sale {sale_id} were distributed concurrently",
        )


class NotDistributedError(StateConflictError):
    """Raised when releasing a sale without a pending commission batch."""

    def __init__(self, sale_id: int) -> None:
        super().__init__(f"No pending commissions for sale {sale_id}")
        self.sale_id = sale_id


class AlreadyReleasedError(StateConflictError):
    """Raised when commissions for a sale were already paid."""

    def __init__(self, sale_id: int) -> None:
        super().__init__(f"Commissions already released for sale {sale_id}")
        self.sale_id = sale_id


# Configuration


class ConfigurationError(CommissionEngineError):
    """Raised when the system is misconfigured."""


class NoActiveScheduleError(ConfigurationError):
    """Raised when no commission rate schedule is active."""

    def __init__(self, version: int | None = None) -> None:
        if version is None:
            message = "No active commission rate schedule configured"
        else:
            message = f"Commission rate schedule version {version} not found"
        super().__init__(message)
        self.version = version


class InvalidScheduleError(ConfigurationError):
    """Raised when a commission rate schedule is rejected."""


class ReferralCodeGenerationError(ConfigurationError):
    """Raised when no unique referral code could be generated."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Failed to generate unique referral code after {attempts} attempts"
        )
        self.attempts = attempts
