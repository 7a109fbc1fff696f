"""Ledger settings loaded from the environment."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LedgerSettings:
    """Tunable ledger policy.

    Attributes:
        default_low_balance_threshold: Threshold for new root accounts when the
            caller does not give one
        allow_sibling_overdraft: If True, payments into a sibling account may
            take its balance below zero (expense backfill without deposits)
        max_conflict_retries: Attempts per atomic unit before a concurrency
            conflict is surfaced
    """

    default_low_balance_threshold: Decimal = Decimal("500.00")
    allow_sibling_overdraft: bool = True
    max_conflict_retries: int = 3

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LedgerSettings":
        """Build settings from EXPENSEKIT_* environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable is set to an unparseable value
        """
        if environ is None:
            environ = os.environ

        defaults = cls()
        threshold = defaults.default_low_balance_threshold
        overdraft = defaults.allow_sibling_overdraft
        retries = defaults.max_conflict_retries

        raw = environ.get("EXPENSEKIT_LOW_BALANCE_THRESHOLD")
        if raw is not None:
            try:
                threshold = Decimal(raw.strip())
            except InvalidOperation:
                raise ValueError(f"Invalid EXPENSEKIT_LOW_BALANCE_THRESHOLD: '{raw}'")
            if threshold < 0:
                raise ValueError("EXPENSEKIT_LOW_BALANCE_THRESHOLD must not be negative")

        raw = environ.get("EXPENSEKIT_SIBLING_OVERDRAFT")
        if raw is not None:
            value = raw.strip().lower()
            if value in TRUE_VALUES:
                overdraft = True
            elif value in FALSE_VALUES:
                overdraft = False
            else:
                raise ValueError(f"Invalid EXPENSEKIT_SIBLING_OVERDRAFT: '{raw}'")

        raw = environ.get("EXPENSEKIT_MAX_RETRIES")
        if raw is not None:
            try:
                retries = int(raw)
            except ValueError:
                raise ValueError(f"Invalid EXPENSEKIT_MAX_RETRIES: '{raw}'")
            if retries < 1:
                raise ValueError("EXPENSEKIT_MAX_RETRIES must be at least 1")

        return cls(
            default_low_balance_threshold=threshold,
            allow_sibling_overdraft=overdraft,
            max_conflict_retries=retries,
        )
