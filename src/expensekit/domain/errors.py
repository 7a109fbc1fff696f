"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for business-rule errors.

    These are deterministic: retrying the same call yields the same error, so
    they are surfaced to the caller unchanged.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested account or transaction does not exist."""


class InvalidParentError(ValidationError):
    """A sibling account was requested under another sibling account."""


class NotSiblingError(ValidationError):
    """A merge was requested for an account that has no parent."""


class PrivilegeRequiredError(DomainError):
    """A non-zero balance sibling merge was attempted without elevated rights."""


class InsufficientFundsError(DomainError):
    """Requested payments exceed the available balance."""

    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(insufficient_funds(required, available))


class ConcurrencyConflictError(RuntimeError):
    """A concurrent writer changed the same rows first.

    Transient: services retry it a bounded number of times before letting it
    reach the caller.
    """


def format_money(amount: Decimal) -> str:
    """Format an amount as ``$1,234.50`` (``-$50.00`` for negatives)."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_number_not_found(account_number: str) -> str:
    """Return message for missing account by number."""
    return f"Account '{account_number}' not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def account_inactive(account_number: str) -> str:
    """Return message for writes against a deactivated account."""
    return f"Account {account_number} is inactive"


def nested_sibling(account_number: str) -> str:
    """Return message when the requested parent is itself a sibling."""
    return f"Cannot create a sibling of sibling account {account_number}; use its parent account"


def not_a_sibling(account_number: str) -> str:
    """Return message when merging a root account."""
    return f"Account {account_number} is not a sibling account"


def merge_requires_privilege(account_number: str, balance: Decimal) -> str:
    """Return message for a non-zero balance merge without privilege."""
    return (
        f"Sibling account {account_number} has a balance of {format_money(balance)}; "
        "an administrator must perform this merge"
    )


def insufficient_funds(required: Decimal, available: Decimal) -> str:
    """Return message for payments exceeding the balance."""
    return (
        f"Insufficient funds. Required: {format_money(required)}, "
        f"Available: {format_money(available)}, "
        f"Shortfall: {format_money(required - available)}"
    )
