"""Shared domain error messages and error types."""

from typing import Iterable, Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic.

    Carries every violated rule in ``messages``.
    """

    def __init__(self, message: str, messages: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.messages = list(messages) if messages is not None else [message]


class NotFoundError(DomainError):
    """Requested entity does not exist in the caller's tenant."""


class ConflictError(DomainError):
    """Domain conflict, such as a second active timer for a case."""


class ForbiddenError(DomainError):
    """Entity exists but belongs to another user."""


class ConfigurationError(DomainError):
    """Missing tenant context or unusable configuration."""


class ConcurrencyError(DomainError):
    """Row changed underneath a read-modify-write too many times.

    Transient: the caller may retry the whole operation.
    """


def tenant_required() -> str:
    """Return message for missing tenant context."""
    return "Tenant context required"


def timer_not_found(timer_id: int) -> str:
    """Return message for missing timer."""
    return f"Timer {timer_id} not found"


def timer_not_owned(timer_id: int, user_id: int) -> str:
    """Return message when a timer belongs to someone else."""
    return f"Timer {timer_id} does not belong to user {user_id}"


def duplicate_active_timer(user_id: int, case_id: int) -> str:
    """Return message for a second timer on the same case."""
    return f"User {user_id} already has an active timer for case {case_id}"


def case_not_found(case_id: int) -> str:
    """Return message for missing legal case."""
    return f"Case {case_id} not found"


def billing_rate_not_found(rate_id: int) -> str:
    """Return message for missing billing rate."""
    return f"Billing rate {rate_id} not found"


def case_configuration_not_found(config_id: int) -> str:
    """Return message for missing case rate configuration."""
    return f"Rate configuration {config_id} not found"


def duplicate_case_configuration(case_id: int) -> str:
    """Return message when a case already has an active configuration."""
    return f"Rate configuration already exists for case {case_id}"


def overlapping_billing_rate() -> str:
    """Return message for overlapping rate periods."""
    return "Overlapping billing rate exists for the same period"


def time_entry_not_found(entry_id: int) -> str:
    """Return message for missing time entry."""
    return f"Time entry {entry_id} not found"


def timer_session_not_found(session_id: int) -> str:
    """Return message for missing timer session."""
    return f"Timer session {session_id} not found"


def require_tenant(tenant_id: Optional[int]) -> int:
    """Return the tenant id, or raise when no tenant context is set.

    Raises:
        ConfigurationError: If tenant_id is None
    """
    if tenant_id is None:
        raise ConfigurationError(tenant_required())
    return tenant_id
