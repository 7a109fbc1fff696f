"""Utility for resolving account numbers to IDs."""

from expensekit.domain.account import AccountService
from expensekit.domain.errors import NotFoundError


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account number or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account number (e.g. "EXP-001-01") or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found
    """
    # If it's already an integer, use it as ID
    if isinstance(account, int):
        return account_service.get_account(account).id

    account = account.strip()
    if account.isdigit():
        return account_service.get_account(int(account)).id

    # Account numbers are stored upper-case
    found = account_service.find_account_by_number(account.upper())
    if found is None:
        raise NotFoundError(f"Account '{account}' not found")
    return found.id
