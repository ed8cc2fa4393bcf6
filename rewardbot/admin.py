"""Admin operations behind the /admin command."""

import logging

from rewardbot.database import crud
from rewardbot.database.models import Task
from rewardbot.errors import NotFound

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, store, notifier, settings):
        self._store = store
        self._notifier = notifier
        self._settings = settings

    async def add_task(self, description: str, reward: int = None) -> Task:
        description = (description or "").strip()
        if not description:
            raise ValueError("task description is empty")
        if reward is None:
            reward = self._settings.task_reward
        if reward <= 0:
            raise ValueError("task reward must be positive")
        async with self._store.session() as session:
            task = await crud.add_task(description, reward, session)
        logger.info("Task #%s added with reward %s", task.id, reward)
        return task

    async def ban(self, user_id: int) -> None:
        async with self._store.user_tx(user_id) as session:
            user = await crud.get_user(user_id, session)
            if user is None:
                raise NotFound(f"user {user_id}")
            user.banned = True
        logger.info("User %s banned by admin", user_id)

    async def broadcast(self, text: str):
        """Returns (sent, attempted)."""
        async with self._store.session() as session:
            user_ids = await crud.list_user_ids(session)
        sent = await self._notifier.broadcast(user_ids, text)
        return sent, len(user_ids)
