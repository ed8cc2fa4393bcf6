import asyncio

import pytest

from rewardbot.database.models import User
from rewardbot.errors import DeviceCollision, InvalidToken, Unauthorized
from rewardbot.identity import LinkOutcome, compute_fingerprint

FP = compute_fingerprint("Mozilla/5.0 (iPhone)", "203.0.113.7")


def test_fingerprint_uses_first_two_address_groups():
    assert compute_fingerprint("UA", "10.20.30.40") == compute_fingerprint("UA", "10.20.99.1")
    assert compute_fingerprint("UA", "10.20.30.40") != compute_fingerprint("UA", "10.21.30.40")
    assert compute_fingerprint("UA", "10.20.30.40") != compute_fingerprint("UA2", "10.20.30.40")


def test_fingerprint_strips_ipv4_mapped_prefix():
    assert compute_fingerprint("UA", "::ffff:10.20.30.40") == compute_fingerprint("UA", "10.20.1.1")


@pytest.mark.asyncio
async def test_issue_token_overwrites_previous(identity, store):
    first = await identity.issue_token(1)
    second = await identity.issue_token(1)
    assert first != second

    with pytest.raises(InvalidToken):
        await identity.register_device(first, FP)
    link = await identity.register_device(second, FP)
    assert link.outcome is LinkOutcome.LINKED


@pytest.mark.asyncio
async def test_link_then_collision(identity, store, notifier):
    token_a = await identity.issue_token(1)
    link_a = await identity.register_device(token_a, FP)
    assert link_a.outcome is LinkOutcome.LINKED
    a = await store.get(User, 1)
    assert a.device_fingerprint == FP
    assert a.banned is False

    token_b = await identity.issue_token(2)
    link_b = await identity.register_device(token_b, FP)
    assert link_b.outcome is LinkOutcome.COLLISION
    assert link_b.owner_id == 1

    b = await store.get(User, 2)
    assert b.banned is True
    # recorded anyway so later claimants still collide
    assert b.device_fingerprint == FP
    assert b.pending_token is None

    a_after = await store.get(User, 1)
    assert a_after.banned is False
    assert a_after.device_fingerprint == FP
    assert any("already used by 1" in text for text in notifier.admin_messages)


@pytest.mark.asyncio
async def test_token_replay_is_rejected(identity):
    token = await identity.issue_token(1)
    await identity.register_device(token, FP)
    with pytest.raises(InvalidToken):
        await identity.register_device(token, FP)


@pytest.mark.asyncio
async def test_unknown_token(identity):
    with pytest.raises(InvalidToken):
        await identity.register_device("deadbeef", FP)
    with pytest.raises(InvalidToken):
        await identity.register_device("", FP)


@pytest.mark.asyncio
async def test_concurrent_resolution_of_one_token(identity):
    token = await identity.issue_token(1)
    results = await asyncio.gather(
        identity.register_device(token, FP),
        identity.register_device(token, FP),
        return_exceptions=True,
    )
    assert sum(isinstance(r, InvalidToken) for r in results) == 1


@pytest.mark.asyncio
async def test_relinking_own_device_is_not_a_collision(identity, store):
    await identity.register_device(await identity.issue_token(1), FP)
    link = await identity.register_device(await identity.issue_token(1), FP)
    assert link.outcome is LinkOutcome.LINKED
    assert (await store.get(User, 1)).banned is False


@pytest.mark.asyncio
async def test_banned_user_gets_no_token(identity, store):
    await identity.register_device(await identity.issue_token(1), FP)
    await identity.register_device(await identity.issue_token(2), FP)
    with pytest.raises(Unauthorized):
        await identity.issue_token(2)


@pytest.mark.asyncio
async def test_collision_result_raises_on_request(identity):
    linked = await identity.register_device(await identity.issue_token(1), FP)
    linked.raise_for_collision()

    collided = await identity.register_device(await identity.issue_token(2), FP)
    with pytest.raises(DeviceCollision) as info:
        collided.raise_for_collision()
    assert (info.value.user_id, info.value.owner_id) == (2, 1)


@pytest.mark.asyncio
async def test_undelivered_notifications_keep_the_ban(identity, store, notifier):
    await identity.register_device(await identity.issue_token(1), FP)
    notifier.fail = True

    link = await identity.register_device(await identity.issue_token(2), FP)

    assert link.outcome is LinkOutcome.COLLISION
    b = await store.get(User, 2)
    assert b.banned is True
    assert b.device_fingerprint == FP
    assert b.pending_token is None
