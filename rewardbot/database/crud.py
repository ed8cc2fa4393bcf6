# crud.py
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rewardbot.database.models import PENDING, Submission, Task, User, Withdrawal, utcnow


# Users
async def get_user(user_id: int, session: AsyncSession) -> Optional[User]:
    return await session.get(User, user_id)


async def get_or_create_user(user_id: int, session: AsyncSession) -> User:
    user = await session.get(User, user_id, with_for_update=True)
    if not user:
        user = User(
            id=user_id,
            balance=0,
            reserved=0,
            referral_count=0,
            banned=False,
            bonus_claimed=False,
        )
        session.add(user)
        await session.flush()
    return user


async def find_user_by_token(token: str, session: AsyncSession) -> Optional[int]:
    result = await session.execute(select(User.id).where(User.pending_token == token))
    return result.scalar_one_or_none()


async def find_fingerprint_owner(
    fingerprint: str, exclude_user_id: int, session: AsyncSession
) -> Optional[int]:
    """Earliest other user that recorded this fingerprint."""
    result = await session.execute(
        select(User.id)
        .where(User.device_fingerprint == fingerprint, User.id != exclude_user_id)
        .order_by(User.verified_at, User.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_user_ids(session: AsyncSession) -> List[int]:
    result = await session.execute(select(User.id).order_by(User.id))
    return list(result.scalars())


# Tasks
async def add_task(description: str, reward: int, session: AsyncSession) -> Task:
    task = Task(description=description, reward=reward)
    session.add(task)
    await session.flush()
    return task


async def get_task(task_id: int, session: AsyncSession) -> Optional[Task]:
    return await session.get(Task, task_id)


async def list_tasks(session: AsyncSession) -> List[Task]:
    result = await session.execute(select(Task).order_by(Task.id))
    return list(result.scalars())


# Submissions
async def add_submission(
    user_id: int, task_id: int, proof_ref: str, session: AsyncSession
) -> Submission:
    submission = Submission(user_id=user_id, task_id=task_id, proof_ref=proof_ref, status=PENDING)
    session.add(submission)
    await session.flush()
    return submission


async def get_submission(submission_id: int, session: AsyncSession) -> Optional[Submission]:
    return await session.get(Submission, submission_id)


async def close_submission(
    submission_id: int, status: str, actor_id: int, session: AsyncSession
) -> bool:
    """Compare-and-set pending -> status. False when someone else got there first."""
    result = await session.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.status == PENDING)
        .values(status=status, processed_by=actor_id, processed_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# Withdrawals
async def add_withdrawal(
    user_id: int, amount: int, wallet_address: str, session: AsyncSession
) -> Withdrawal:
    withdrawal = Withdrawal(user_id=user_id, amount=amount, wallet_address=wallet_address)
    session.add(withdrawal)
    await session.flush()
    return withdrawal


async def get_withdrawal(withdrawal_id: int, session: AsyncSession) -> Optional[Withdrawal]:
    return await session.get(Withdrawal, withdrawal_id)
