import pytest

from rewardbot.access import MEMBERSHIP, VERIFICATION, Tier
from rewardbot.database.models import User
from rewardbot.identity import compute_fingerprint

REFERRER = 10
NEWCOMER = 20


async def verify(identity, user_id, user_agent="UA"):
    token = await identity.issue_token(user_id)
    return await identity.register_device(token, compute_fingerprint(user_agent, f"10.{user_id}.0.1"))


@pytest.mark.asyncio
async def test_new_user_sees_both_requirements(onboarding, store):
    result = await onboarding.start(NEWCOMER)
    assert result.tier is Tier.NEEDS_BOTH
    assert result.missing == [VERIFICATION, MEMBERSHIP]
    assert not result.bonus_credited
    assert await store.get(User, NEWCOMER) is not None


@pytest.mark.asyncio
async def test_full_flow_pays_bonus_and_referral_once(onboarding, identity, membership, ledger, store, settings):
    await ledger.credit(REFERRER, 1, "seed")

    # first /start comes through the referral deep link, before any proof
    first = await onboarding.start(NEWCOMER, str(REFERRER))
    assert first.tier is Tier.NEEDS_BOTH

    await verify(identity, NEWCOMER)
    second = await onboarding.start(NEWCOMER)
    assert second.tier is Tier.NEEDS_MEMBERSHIP
    assert second.missing == [MEMBERSHIP]

    membership.members.add(NEWCOMER)
    third = await onboarding.start(NEWCOMER)
    assert third.tier is Tier.FULL
    assert third.bonus_credited
    assert third.referral is not None
    assert third.referral.referrer_id == REFERRER

    again = await onboarding.start(NEWCOMER, str(REFERRER))
    assert again.tier is Tier.FULL
    assert not again.bonus_credited
    assert again.referral is None

    assert await ledger.balance(NEWCOMER) == settings.new_user_bonus
    referrer = await store.get(User, REFERRER)
    assert referrer.referral_count == 1


@pytest.mark.asyncio
async def test_banned_user(onboarding, identity, membership):
    await verify(identity, 1, "same")
    token = await identity.issue_token(2)
    await identity.register_device(token, compute_fingerprint("same", "10.1.0.1"))
    membership.members.add(2)

    result = await onboarding.start(2)
    assert result.tier is Tier.BANNED
    assert not result.bonus_credited
