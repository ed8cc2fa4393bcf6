"""The /start flow: create the user, compute the tier, grant bonus and referral once."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from rewardbot.access import Tier, classify, missing_requirements
from rewardbot.database import crud
from rewardbot.errors import AlreadyClaimed
from rewardbot.referrals import ReferralOutcome, parse_referrer_code

logger = logging.getLogger(__name__)


@dataclass
class OnboardingResult:
    tier: Tier
    missing: List[str] = field(default_factory=list)
    bonus_credited: bool = False
    referral: Optional[ReferralOutcome] = None


class Onboarding:
    def __init__(self, store, membership, ledger, referrals):
        self._store = store
        self._membership = membership
        self._ledger = ledger
        self._referrals = referrals

    async def start(self, user_id: int, referrer_code: Optional[str] = None) -> OnboardingResult:
        code = referrer_code if parse_referrer_code(referrer_code) is not None else None

        async with self._store.user_tx(user_id) as session:
            user = await crud.get_or_create_user(user_id, session)
            # the deep link code only arrives with the very first /start, keep it
            if code and user.referred_by is None and not user.bonus_claimed and not user.pending_referrer:
                user.pending_referrer = code
            remembered = user.pending_referrer

        is_member = await self._membership.is_member(user_id)
        tier = classify(user, is_member)
        result = OnboardingResult(tier=tier, missing=missing_requirements(tier))
        if tier is not Tier.FULL:
            return result

        try:
            await self._ledger.claim_bonus(user_id)
        except AlreadyClaimed:
            return result
        result.bonus_credited = True
        logger.info("User %s reached full access", user_id)

        # first time at full access: the only moment a referral can be attributed
        result.referral = await self._referrals.attribute(user_id, remembered or code)
        return result
