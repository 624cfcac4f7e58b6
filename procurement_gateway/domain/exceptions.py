"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Requested project, spending request or supplier does not exist"""

    pass


class InvalidTransitionError(DomainException):
    """Spending request is in the wrong state for the requested operation"""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move request from {current} to {target}")


class ValidationError(DomainException):
    """Missing or malformed input (empty rejection reason, non-positive amount, ...)"""

    pass


class AlreadyRecordedError(DomainException):
    """An expense already exists for this spending request"""

    def __init__(self, existing):
        self.existing = existing
        super().__init__(f"Expense already recorded for request {existing.source_request_id}")


class PersistenceError(DomainException):
    """Database stayed unavailable or conflicted after all transaction retries"""

    pass
