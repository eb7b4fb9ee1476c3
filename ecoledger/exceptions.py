"""Exceptions raised by the ledger and task lifecycle services."""

from uuid import UUID


class EcoLedgerError(Exception):
    """Base exception for ledger and lifecycle errors."""

    def __init__(self, message: str, error_type: str = "ecoledger_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class TaskNotFoundError(EcoLedgerError):
    """Raised when a task is not found."""

    def __init__(self, task_id: UUID | str):
        super().__init__(f"Task '{task_id}' not found", "task_not_found")
        self.task_id = task_id


class InvalidTransitionError(EcoLedgerError):
    """Raised when a task state change is not allowed."""

    def __init__(self, current: str, target: str, allowed: list[str] | None = None):
        super().__init__(
            f"Cannot transition task from '{current}' to '{target}'. "
            f"Allowed from '{current}': {allowed or []}",
            "invalid_transition",
        )
        self.current = current
        self.target = target
        self.allowed = allowed or []


class AlreadyCompletedError(EcoLedgerError):
    """Raised when a completion loses to an earlier one.

    This is the expected outcome for the second of two concurrent
    completions, not a failure of the system.
    """

    def __init__(self, task_id: UUID | str, status: str | None = None):
        super().__init__(
            f"Task '{task_id}' has already been completed",
            "already_completed",
        )
        self.task_id = task_id
        self.status = status


class InvalidAmountError(EcoLedgerError):
    """Raised when a ledger amount is not a non-negative integer."""

    def __init__(self, amount: object):
        super().__init__(
            f"Ledger amount must be a non-negative integer, got {amount!r}",
            "invalid_amount",
        )
        self.amount = amount


class UnknownTransactionTypeError(EcoLedgerError):
    """Raised for a transaction type outside the closed set."""

    def __init__(self, transaction_type: object):
        super().__init__(
            f"Unknown transaction type {transaction_type!r}",
            "unknown_transaction_type",
        )
        self.transaction_type = transaction_type


class ActorResolutionFailedError(EcoLedgerError):
    """Raised when an admin identity can be neither found nor created."""

    def __init__(self, email: str):
        super().__init__(
            f"Could not resolve an actor for '{email}'",
            "actor_resolution_failed",
        )
        self.email = email


class UserNotFoundError(EcoLedgerError):
    """Raised when a user is not found."""

    def __init__(self, user_id: UUID | str):
        super().__init__(f"User '{user_id}' not found", "user_not_found")
        self.user_id = user_id


class RewardNotFoundError(EcoLedgerError):
    """Raised when a reward item is missing or unavailable."""

    def __init__(self, reward_id: UUID | str):
        super().__init__(
            f"Reward '{reward_id}' not found or unavailable", "reward_not_found"
        )
        self.reward_id = reward_id


class InsufficientBalanceError(EcoLedgerError):
    """Raised when a redemption costs more than the ledger balance."""

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient balance: required {required}, have {available}",
            "insufficient_balance",
        )
        self.required = required
        self.available = available


class LedgerStoreError(EcoLedgerError):
    """Raised when the backing store fails mid-operation."""

    def __init__(self, operation: str):
        super().__init__(
            f"Store failure during '{operation}'", "store_unavailable"
        )
        self.operation = operation


class InvalidVerificationError(EcoLedgerError):
    """Raised when a verification payload does not match its schema."""

    def __init__(self, detail: str):
        super().__init__(
            f"Invalid verification result: {detail}", "invalid_verification"
        )
        self.detail = detail


class InvalidLimitError(EcoLedgerError):
    """Raised when a page limit is below one."""

    def __init__(self, limit: object):
        super().__init__(f"Limit must be at least 1, got {limit!r}", "invalid_limit")
        self.limit = limit
