"""Balance mutations.

Every mutation runs under the owner's user lock through Store.user_tx().
Withdrawals use reserve -> transfer -> commit/release so a failed rail call
never costs the user their balance.
"""

import logging
from dataclasses import dataclass

from rewardbot.database import crud
from rewardbot.database.models import COMPLETED, RELEASED, User, utcnow
from rewardbot.errors import (
    AlreadyClaimed,
    AlreadyProcessed,
    InsufficientBalance,
    NotFound,
    RailError,
    WalletMissing,
)
from rewardbot.money import format_amount

logger = logging.getLogger(__name__)

MIN_WALLET_LENGTH = 8


@dataclass(frozen=True)
class WithdrawalReceipt:
    withdrawal_id: int
    amount: int
    wallet_address: str
    tx_id: str


def _apply_credit(user: User, amount: int, cause: str) -> int:
    if amount <= 0:
        raise ValueError(f"credit amount must be positive, got {amount}")
    user.balance += amount
    logger.info("Credit user=%s amount=%s cause=%s balance=%s", user.id, amount, cause, user.balance)
    return user.balance


async def grant_task_reward(session, submission, task) -> int:
    """
    Credit the submitter for an approved submission.

    Only the submission workflow calls this, inside the same transaction that
    flips the submission out of pending, with the submitter's lock held.
    """
    user = await crud.get_or_create_user(submission.user_id, session)
    return _apply_credit(user, task.reward, f"task:{task.id}:submission:{submission.id}")


class Ledger:
    def __init__(self, store, rail, settings):
        self._store = store
        self._rail = rail
        self._settings = settings

    async def credit(self, user_id: int, amount: int, cause: str) -> int:
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_or_create_user(user_id, session)
            return _apply_credit(user, amount, cause)

    async def debit(self, user_id: int, amount: int) -> int:
        if amount <= 0:
            raise ValueError(f"debit amount must be positive, got {amount}")
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_user(user_id, session)
            if user is None:
                raise NotFound(f"user {user_id}")
            if amount > user.available:
                raise InsufficientBalance(user.available, amount)
            user.balance -= amount
            logger.info("Debit user=%s amount=%s balance=%s", user_id, amount, user.balance)
            return user.balance

    async def claim_bonus(self, user_id: int) -> int:
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_or_create_user(user_id, session)
            if user.bonus_claimed:
                raise AlreadyClaimed(f"user {user_id} already received the new-user bonus")
            user.bonus_claimed = True
            return _apply_credit(user, self._settings.new_user_bonus, "new-user-bonus")

    async def set_wallet(self, user_id: int, address: str) -> None:
        address = (address or "").strip()
        if len(address) < MIN_WALLET_LENGTH:
            raise ValueError("invalid wallet address")
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_or_create_user(user_id, session)
            user.wallet_address = address

    async def balance(self, user_id: int) -> int:
        user = await self._store.get(User, user_id)
        return user.balance if user else 0

    async def withdraw(self, user_id: int) -> WithdrawalReceipt:
        withdrawal_id, amount, wallet = await self._reserve(user_id)

        try:
            operating = await self._rail.operating_balance()
            if operating < amount:
                raise RailError(
                    f"rail balance {format_amount(operating)} is below {format_amount(amount)}"
                )
        except Exception as exc:
            # nothing has been sent yet
            reason = exc.reason if isinstance(exc, RailError) else f"{type(exc).__name__}: {exc}"
            logger.error("Withdrawal %s for user %s failed: %s", withdrawal_id, user_id, reason)
            await self._release(user_id, withdrawal_id, amount, reason)
            raise

        try:
            tx_id = await self._rail.transfer(wallet, amount)
        except RailError as exc:
            logger.error("Withdrawal %s for user %s failed: %s", withdrawal_id, user_id, exc.reason)
            await self._release(user_id, withdrawal_id, amount, exc.reason)
            raise
        except Exception:
            # the transfer may have gone out; the reservation stays for manual reconciliation
            logger.exception("Withdrawal %s for user %s ended in an unknown state", withdrawal_id, user_id)
            raise

        await self._commit(user_id, withdrawal_id, amount, tx_id)
        return WithdrawalReceipt(withdrawal_id, amount, wallet, tx_id)

    async def _reserve(self, user_id: int):
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_user(user_id, session)
            if user is None:
                raise NotFound(f"user {user_id}")
            if not user.wallet_address:
                raise WalletMissing(f"user {user_id} has no wallet address")
            if user.reserved:
                raise AlreadyProcessed(f"user {user_id} already has a withdrawal in flight")
            amount = user.available
            if amount < self._settings.min_withdrawal or amount <= 0:
                raise InsufficientBalance(amount, self._settings.min_withdrawal)
            user.reserved = amount
            withdrawal = await crud.add_withdrawal(user_id, amount, user.wallet_address, session)
            logger.info("Reserved %s for withdrawal %s of user %s", amount, withdrawal.id, user_id)
            return withdrawal.id, amount, user.wallet_address

    async def _commit(self, user_id: int, withdrawal_id: int, amount: int, tx_id: str) -> None:
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_user(user_id, session)
            withdrawal = await crud.get_withdrawal(withdrawal_id, session)
            user.balance -= amount
            user.reserved -= amount
            withdrawal.status = COMPLETED
            withdrawal.tx_id = tx_id
            withdrawal.finished_at = utcnow()
        logger.info("Withdrawal %s of user %s completed, tx %s", withdrawal_id, user_id, tx_id)

    async def _release(self, user_id: int, withdrawal_id: int, amount: int, reason: str) -> None:
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_user(user_id, session)
            withdrawal = await crud.get_withdrawal(withdrawal_id, session)
            user.reserved -= amount
            withdrawal.status = RELEASED
            withdrawal.error = reason
            withdrawal.finished_at = utcnow()
