"""Device verification: one-time tokens and fingerprint collision detection."""

import enum
import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from rewardbot.database import crud
from rewardbot.database.models import utcnow
from rewardbot.errors import DeviceCollision, InvalidToken, Unauthorized

logger = logging.getLogger(__name__)


class LinkOutcome(enum.Enum):
    LINKED = "linked"
    COLLISION = "collision"


@dataclass(frozen=True)
class DeviceLink:
    outcome: LinkOutcome
    user_id: int
    fingerprint: str
    owner_id: Optional[int] = None

    def raise_for_collision(self) -> None:
        if self.outcome is LinkOutcome.COLLISION:
            raise DeviceCollision(self.user_id, self.owner_id)


def compute_fingerprint(user_agent: Optional[str], address: Optional[str]) -> str:
    """
    SHA-256 over the user agent and the first two groups of the client address.

    Coarse on purpose: users behind the same NAT or /16 with the same browser
    collide. Treat it as an anti-multi-account heuristic, not as identity.
    """
    address = (address or "").strip()
    if address.startswith("::ffff:"):
        address = address[len("::ffff:"):]
    prefix = ".".join(address.split(".")[:2])
    raw = f"{user_agent or ''}|{prefix}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class IdentityRegistry:
    def __init__(self, store, notifier):
        self._store = store
        self._notifier = notifier

    async def issue_token(self, user_id: int) -> str:
        token = secrets.token_hex(20)
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_or_create_user(user_id, session)
            if user.banned:
                raise Unauthorized(f"user {user_id} is banned")
            # overwrites whatever token was pending before
            user.pending_token = token
        logger.info("Issued verification token for user %s", user_id)
        return token

    async def register_device(self, token: str, fingerprint: str) -> DeviceLink:
        if not token:
            raise InvalidToken("empty token")

        async with self._store.session() as session:
            user_id = await crud.find_user_by_token(token, session)
        if user_id is None:
            raise InvalidToken("unknown or already used token")

        async with self._store.user_tx(user_id) as session:
            user = await crud.get_or_create_user(user_id, session)
            # a concurrent resolution may have consumed it between lookup and lock
            if user.pending_token != token:
                raise InvalidToken("unknown or already used token")
            user.pending_token = None

            async with self._store.fingerprint_guard(fingerprint):
                owner_id = await crud.find_fingerprint_owner(fingerprint, user_id, session)
                user.device_fingerprint = fingerprint
                user.verified_at = utcnow()
                if owner_id is not None:
                    user.banned = True
                await session.commit()

        if owner_id is not None:
            logger.warning(
                "Device collision: user %s presented fingerprint of user %s, banned", user_id, owner_id
            )
            await self._notifier.send(
                user_id,
                "Your account has been banned: this device is already linked to another account.",
            )
            await self._notifier.notify_admins(
                f"Anti-cheat: user {user_id} tried to verify a device already used by "
                f"{owner_id}. New account auto-banned."
            )
            return DeviceLink(LinkOutcome.COLLISION, user_id, fingerprint, owner_id)

        logger.info("User %s linked device %s", user_id, fingerprint[:12])
        await self._notifier.send(
            user_id,
            "Device verified successfully. Now join the required channel and send /start "
            "to complete registration.",
        )
        await self._notifier.notify_admins(
            f"Device verification: user {user_id} linked a device (hash {fingerprint})."
        )
        return DeviceLink(LinkOutcome.LINKED, user_id, fingerprint)
