import enum
import logging

from aiogram import Bot
from aiogram.enums import ChatMemberStatus
from aiogram.exceptions import TelegramAPIError

logger = logging.getLogger(__name__)

_MEMBER_STATUSES = {
    ChatMemberStatus.CREATOR,
    ChatMemberStatus.ADMINISTRATOR,
    ChatMemberStatus.MEMBER,
}


class Membership(enum.Enum):
    MEMBER = "member"
    NOT_MEMBER = "not_member"
    UNKNOWN = "unknown"


class ChannelMembership:
    """Asks Telegram whether a user is in the required channel."""

    def __init__(self, bot: Bot, channel: str):
        self._bot = bot
        self._channel = channel

    async def check(self, user_id: int) -> Membership:
        try:
            member = await self._bot.get_chat_member(self._channel, user_id)
        except TelegramAPIError as e:
            # bot not admin in the channel, wrong channel name, network...
            logger.warning("Membership check for %s failed: %s", user_id, e)
            return Membership.UNKNOWN
        if member.status in _MEMBER_STATUSES:
            return Membership.MEMBER
        if member.status == ChatMemberStatus.RESTRICTED and getattr(member, "is_member", False):
            return Membership.MEMBER
        return Membership.NOT_MEMBER

    async def is_member(self, user_id: int) -> bool:
        # fail closed
        return await self.check(user_id) is Membership.MEMBER
