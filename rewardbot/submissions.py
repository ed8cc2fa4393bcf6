"""Task proof submissions: pending -> approved | rejected, decided once by an admin."""

import logging

from rewardbot.database import crud
from rewardbot.database.models import APPROVED, REJECTED, Submission
from rewardbot.errors import AlreadyProcessed, NotFound, Unauthorized
from rewardbot.ledger import grant_task_reward
from rewardbot.money import format_amount

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"

_TARGET_STATUS = {APPROVE: APPROVED, REJECT: REJECTED}


class SubmissionWorkflow:
    def __init__(self, store, notifier, settings):
        self._store = store
        self._notifier = notifier
        self._settings = settings

    async def submit(self, user_id: int, task_id: int, proof_ref: str) -> Submission:
        async with self._store.session() as session:
            task = await crud.get_task(task_id, session)
            if task is None:
                raise NotFound(f"task {task_id}")
            submission = await crud.add_submission(user_id, task_id, proof_ref, session)
        logger.info("User %s submitted proof for task %s as #%s", user_id, task_id, submission.id)

        delivered = await self._notifier.review_request(submission, task)
        if not delivered:
            logger.warning("Submission #%s did not reach any admin", submission.id)
        return submission

    async def decide(self, submission_id: int, action: str, actor_id: int) -> Submission:
        if not self._settings.is_admin(actor_id):
            raise Unauthorized(f"user {actor_id} is not an admin")
        if action not in _TARGET_STATUS:
            raise ValueError(f"unknown action {action!r}")

        submission = await self._store.get(Submission, submission_id)
        if submission is None:
            raise NotFound(f"submission {submission_id}")

        async with self._store.submission_tx(submission_id) as session:
            async with self._store.user_locks.hold(submission.user_id):
                if not await crud.close_submission(
                    submission_id, _TARGET_STATUS[action], actor_id, session
                ):
                    raise AlreadyProcessed(f"submission {submission_id} already processed")
                submission = await crud.get_submission(submission_id, session)
                reward = None
                if action == APPROVE:
                    task = await crud.get_task(submission.task_id, session)
                    if task is None:
                        # rolls the status change back with the session
                        raise NotFound(f"task {submission.task_id}")
                    await grant_task_reward(session, submission, task)
                    reward = task.reward
                await session.commit()

        logger.info("Submission #%s %s by admin %s", submission_id, submission.status, actor_id)
        if reward is not None:
            text = (
                f"Your submission #{submission_id} was approved. "
                f"+{format_amount(reward)} TON added to your balance."
            )
        else:
            text = f"Your submission #{submission_id} was rejected by admin."
        await self._notifier.send(submission.user_id, text)
        return submission
