"""Access tiers computed from a user row and a membership fact."""

import enum
from typing import List, Optional

VERIFICATION = "verification"
MEMBERSHIP = "membership"

BOOTSTRAP_COMMANDS = ("/start", "/verify")


class Tier(enum.Enum):
    BANNED = "banned"
    NEEDS_BOTH = "needs_both"
    NEEDS_VERIFICATION = "needs_verification"
    NEEDS_MEMBERSHIP = "needs_membership"
    FULL = "full"


def classify(user, is_member: bool) -> Tier:
    """user may be None for someone who never talked to the bot."""
    if user is not None and user.banned:
        return Tier.BANNED
    verified = bool(user is not None and user.device_fingerprint)
    if verified and is_member:
        return Tier.FULL
    if verified:
        return Tier.NEEDS_MEMBERSHIP
    if is_member:
        return Tier.NEEDS_VERIFICATION
    return Tier.NEEDS_BOTH


def missing_requirements(tier: Tier) -> List[str]:
    # verification is always reported before membership
    if tier is Tier.NEEDS_BOTH:
        return [VERIFICATION, MEMBERSHIP]
    if tier is Tier.NEEDS_VERIFICATION:
        return [VERIFICATION]
    if tier is Tier.NEEDS_MEMBERSHIP:
        return [MEMBERSHIP]
    return []


def is_bootstrap_command(text: Optional[str]) -> bool:
    if not text:
        return False
    command = text.strip().split(maxsplit=1)[0] if text.strip() else ""
    # "/start@my_bot" is the same command
    command = command.split("@", 1)[0].lower()
    return command in BOOTSTRAP_COMMANDS
