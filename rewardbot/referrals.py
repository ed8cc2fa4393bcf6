"""Referral attribution and referrer payout."""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from rewardbot.database import crud
from rewardbot.errors import RailError
from rewardbot.money import format_amount

logger = logging.getLogger(__name__)


class PayoutPath(enum.Enum):
    RAIL = "rail"
    LEDGER = "ledger"


@dataclass(frozen=True)
class ReferralOutcome:
    referrer_id: int
    paid_via: PayoutPath
    tx_id: Optional[str] = None


def parse_referrer_code(code) -> Optional[int]:
    if code is None:
        return None
    try:
        return int(str(code).strip())
    except ValueError:
        return None


class ReferralEngine:
    def __init__(self, store, ledger, rail, notifier, settings):
        self._store = store
        self._ledger = ledger
        self._rail = rail
        self._notifier = notifier
        self._settings = settings

    async def attribute(self, new_user_id: int, referrer_code) -> Optional[ReferralOutcome]:
        """
        Attribute new_user_id to the owner of referrer_code and pay the referrer.

        Call only when the new user first reaches the full access tier. The
        first successful attribution is permanent; every other case (no code,
        self-referral, unknown referrer, already referred) is a silent no-op.
        """
        referrer_id = parse_referrer_code(referrer_code)
        if referrer_id is None or referrer_id == new_user_id:
            return None

        async with self._store.session() as session:
            if await crud.get_user(referrer_id, session) is None:
                return None

        async with self._store.user_tx(new_user_id) as session:
            user = await crud.get_or_create_user(new_user_id, session)
            if user.referred_by is not None:
                return None
            user.referred_by = referrer_id
            user.pending_referrer = None

        # counted exactly once, whichever way the reward ends up paid
        async with self._store.user_tx(referrer_id) as session:
            referrer = await crud.get_user(referrer_id, session)
            referrer.referral_count += 1
            wallet = referrer.wallet_address
        logger.info("User %s attributed to referrer %s", new_user_id, referrer_id)

        outcome = await self._pay(referrer_id, wallet, new_user_id)
        await self._notify(outcome)
        return outcome

    async def _pay(self, referrer_id: int, wallet: Optional[str], new_user_id: int) -> ReferralOutcome:
        amount = self._settings.referral_reward
        if wallet:
            try:
                if await self._rail.operating_balance() >= amount:
                    tx_id = await self._rail.transfer(wallet, amount)
                    return ReferralOutcome(referrer_id, PayoutPath.RAIL, tx_id)
                logger.warning("Rail balance too low for referral payout to %s", referrer_id)
            except RailError as exc:
                logger.error("Referral payout to %s over rail failed: %s", referrer_id, exc.reason)
            except Exception:
                logger.exception("Referral payout to %s over rail failed unexpectedly", referrer_id)
        await self._ledger.credit(referrer_id, amount, f"referral:{new_user_id}")
        return ReferralOutcome(referrer_id, PayoutPath.LEDGER)

    async def _notify(self, outcome: ReferralOutcome) -> None:
        amount = format_amount(self._settings.referral_reward)
        if outcome.paid_via is PayoutPath.RAIL:
            text = f"You earned a referral reward of {amount} TON. Transaction: {outcome.tx_id}"
        else:
            text = f"You were credited {amount} TON to your balance for a referral."
        await self._notifier.send(outcome.referrer_id, text)
