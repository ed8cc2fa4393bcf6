"""Best-effort Telegram notifications.

Sends are bounded by a timeout and never retried; a failure is logged and
reported as False, it never undoes whatever state change triggered it.
"""

import asyncio
import logging
from typing import Iterable, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

logger = logging.getLogger(__name__)


def review_keyboard(submission_id: int) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="Approve", callback_data=f"approve_{submission_id}"),
            InlineKeyboardButton(text="Reject", callback_data=f"reject_{submission_id}"),
        ]
    ])


class TelegramNotifier:
    def __init__(self, bot: Bot, admin_ids: Iterable[int], timeout: float = 10.0):
        self._bot = bot
        self._admin_ids = sorted(admin_ids)
        self._timeout = timeout

    async def _deliver(self, chat_id: int, coro) -> bool:
        try:
            await asyncio.wait_for(coro, timeout=self._timeout)
            return True
        except (TelegramAPIError, asyncio.TimeoutError) as e:
            logger.warning("Could not notify %s: %s", chat_id, e)
            return False

    async def send(self, chat_id: int, text: str, reply_markup: Optional[InlineKeyboardMarkup] = None) -> bool:
        return await self._deliver(
            chat_id, self._bot.send_message(chat_id, text, reply_markup=reply_markup)
        )

    async def notify_admins(self, text: str) -> int:
        sent = 0
        for admin_id in self._admin_ids:
            if await self.send(admin_id, text):
                sent += 1
        return sent

    async def review_request(self, submission, task) -> int:
        """Photo of the proof with Approve/Reject buttons, once per admin."""
        caption = (
            f"Submission ID: {submission.id}\n"
            f"User: {submission.user_id}\n"
            f"Task: {task.description}"
        )
        sent = 0
        for admin_id in self._admin_ids:
            delivered = await self._deliver(
                admin_id,
                self._bot.send_photo(
                    admin_id,
                    submission.proof_ref,
                    caption=caption,
                    reply_markup=review_keyboard(submission.id),
                ),
            )
            if delivered:
                sent += 1
        return sent

    async def broadcast(self, user_ids: Iterable[int], text: str) -> int:
        sent = 0
        for user_id in user_ids:
            if await self.send(user_id, f"Broadcast from admin:\n\n{text}"):
                sent += 1
        return sent
