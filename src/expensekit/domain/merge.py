"""Sibling account merge domain service."""

import logging
from typing import Optional
from expensekit.config import LedgerSettings
from expensekit.database.base import Database
from expensekit.domain.entities import Account, MergeCheck, MergeResult
from expensekit.domain.errors import (
    NotFoundError,
    NotSiblingError,
    PrivilegeRequiredError,
    account_not_found,
    merge_requires_privilege,
    not_a_sibling,
)
from expensekit.domain.retry import run_atomic

logger = logging.getLogger(__name__)


class MergeService:
    """Service for folding sibling accounts back into their parent."""

    def __init__(self, db: Database, settings: Optional[LedgerSettings] = None):
        """Initialize merge service.

        Args:
            db: Database instance
            settings: Ledger settings (defaults to LedgerSettings())
        """
        self.db = db
        self.settings = settings or LedgerSettings()

    def _load_sibling(self, sibling_account_id: int, lock: bool) -> Account:
        load = self.db.get_account_for_update if lock else self.db.get_account
        sibling = load(sibling_account_id)
        if sibling is None:
            raise NotFoundError(account_not_found(sibling_account_id))
        if not sibling.is_sibling:
            raise NotSiblingError(not_a_sibling(sibling.account_number))
        return sibling

    def check_merge(self, sibling_account_id: int) -> MergeCheck:
        """Preview a merge without changing anything.

        Raises:
            NotFoundError: If the sibling does not exist
            NotSiblingError: If the account is a root account
        """
        sibling = self._load_sibling(sibling_account_id, lock=False)
        return MergeCheck(
            sibling_account_id=sibling.id,
            parent_account_id=sibling.parent_account_id,
            balance=sibling.balance,
            transaction_count=self.db.count_transactions(sibling.id),
        )

    def merge_into_parent(self, sibling_account_id: int, actor_is_privileged: bool = False) -> MergeResult:
        """Move a sibling's transactions to its parent and delete the sibling.

        A zero-balance sibling can be merged by any caller allowed to merge.
        A sibling with a non-zero balance needs a privileged actor; its balance
        is added to the parent's. Transactions keep every field except the
        owning account. The whole merge is one unit of work.

        Args:
            sibling_account_id: ID of the sibling account
            actor_is_privileged: Whether the caller has administrator rights

        Returns:
            MergeResult with the parent ID, number of transactions moved and
            the balance transferred

        Raises:
            NotFoundError: If the sibling (or its parent) does not exist,
                including when it was already merged
            NotSiblingError: If the account is a root account
            PrivilegeRequiredError: If the balance is non-zero and the actor
                is not privileged
        """

        def work() -> MergeResult:
            sibling = self._load_sibling(sibling_account_id, lock=True)
            parent = self.db.get_account_for_update(sibling.parent_account_id)
            if parent is None:
                raise NotFoundError(account_not_found(sibling.parent_account_id))

            if sibling.balance != 0 and not actor_is_privileged:
                raise PrivilegeRequiredError(
                    merge_requires_privilege(sibling.account_number, sibling.balance)
                )

            moved = self.db.reassign_transactions(sibling.id, parent.id)
            self.db.update_account_balance(parent.id, parent.balance + sibling.balance)
            self.db.delete_account(sibling.id)
            return MergeResult(
                parent_account_id=parent.id,
                transactions_merged=moved,
                balance_transferred=sibling.balance,
                merged_account_number=sibling.account_number,
            )

        result = run_atomic(self.db, work, self.settings.max_conflict_retries)
        logger.info(
            "Merged sibling account %s into parent",
            result.merged_account_number,
            extra={
                "parent_account_id": result.parent_account_id,
                "transactions_merged": result.transactions_merged,
                "balance_transferred": str(result.balance_transferred),
                "privileged": actor_is_privileged,
            },
        )
        return result
