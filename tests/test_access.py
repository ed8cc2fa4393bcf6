from types import SimpleNamespace

from rewardbot.access import (
    MEMBERSHIP,
    VERIFICATION,
    Tier,
    classify,
    is_bootstrap_command,
    missing_requirements,
)


def user(fingerprint=None, banned=False):
    return SimpleNamespace(device_fingerprint=fingerprint, banned=banned)


def test_banned_overrides_everything():
    assert classify(user("abc", banned=True), True) is Tier.BANNED


def test_tiers():
    assert classify(user(), False) is Tier.NEEDS_BOTH
    assert classify(user(), True) is Tier.NEEDS_VERIFICATION
    assert classify(user("abc"), False) is Tier.NEEDS_MEMBERSHIP
    assert classify(user("abc"), True) is Tier.FULL


def test_unknown_user_needs_both():
    assert classify(None, False) is Tier.NEEDS_BOTH


def test_missing_requirements_order():
    assert missing_requirements(Tier.NEEDS_BOTH) == [VERIFICATION, MEMBERSHIP]
    assert missing_requirements(Tier.NEEDS_MEMBERSHIP) == [MEMBERSHIP]
    assert missing_requirements(Tier.FULL) == []


def test_bootstrap_commands():
    assert is_bootstrap_command("/start 12345")
    assert is_bootstrap_command("/verify@reward_bot")
    assert not is_bootstrap_command("/withdraw")
    assert not is_bootstrap_command("start")
    assert not is_bootstrap_command(None)
