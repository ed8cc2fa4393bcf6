# handlers/access.py
from typing import Any, Awaitable, Callable, Dict, List

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from rewardbot.access import MEMBERSHIP, VERIFICATION, Tier, classify, is_bootstrap_command, missing_requirements
from rewardbot.database.models import User

BANNED_TEXT = "Your account is banned."


def requirement_steps(missing: List[str], channel: str) -> List[str]:
    steps = []
    if VERIFICATION in missing:
        steps.append("verify your device using /verify")
    if MEMBERSHIP in missing:
        steps.append(f"join {channel}")
    return steps


class AccessMiddleware(BaseMiddleware):
    """
    Non-admins below full access may only use /start and /verify.
    Everything else, inline buttons included, gets the list of missing steps.
    """

    def __init__(self, store, membership, settings):
        self._store = store
        self._membership = membership
        self._settings = settings

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        from_user = data.get("event_from_user")
        if from_user is None or self._settings.is_admin(from_user.id):
            return await handler(event, data)
        if isinstance(event, Message) and is_bootstrap_command(event.text):
            return await handler(event, data)

        user = await self._store.get(User, from_user.id)
        if user is not None and user.banned:
            tier = Tier.BANNED
        else:
            tier = classify(user, await self._membership.is_member(from_user.id))
        if tier is Tier.FULL:
            return await handler(event, data)

        if tier is Tier.BANNED:
            hint = BANNED_TEXT
        else:
            steps = requirement_steps(missing_requirements(tier), self._settings.force_channel)
            hint = f"Access denied. You must {' and '.join(steps)} to use the bot."
        if isinstance(event, CallbackQuery):
            await event.answer(hint, show_alert=True)
        elif isinstance(event, Message):
            await event.answer(hint)
        return None
