# handlers/tasks.py
import logging

from aiogram import F, Router
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message

from rewardbot.database import crud
from rewardbot.errors import AlreadyProcessed, NotFound, Unauthorized
from rewardbot.money import format_amount
from rewardbot.submissions import APPROVE, REJECT

logger = logging.getLogger(__name__)

router = Router()


async def tasks_text(store) -> str:
    async with store.session() as session:
        tasks = await crud.list_tasks(session)
    if not tasks:
        return "No tasks available right now."
    lines = ["Available tasks:"]
    for task in tasks:
        lines.append(f"ID: {task.id} - {task.description} (Reward: {format_amount(task.reward)} TON)")
    return "\n".join(lines)


def proof_file_id(message: Message):
    if message.photo:
        return message.photo[-1].file_id
    if message.reply_to_message and message.reply_to_message.photo:
        return message.reply_to_message.photo[-1].file_id
    return None


@router.message(Command("tasks"))
async def cmd_tasks(message: Message, store):
    await message.answer(await tasks_text(store))


@router.message(Command("submit"))
async def cmd_submit(message: Message, command: CommandObject, submissions):
    args = (command.args or "").split()
    if not args or not args[0].isdigit():
        await message.answer("Usage: /submit <task_id> (attach screenshot/photo)")
        return

    file_id = proof_file_id(message)
    if not file_id:
        await message.answer(
            "Please attach a screenshot/photo with /submit or reply to a photo with /submit <task_id>."
        )
        return

    try:
        await submissions.submit(message.from_user.id, int(args[0]), file_id)
    except NotFound:
        await message.answer("Task not found.")
        return
    await message.answer("Submission received. Wait for admin approval.")


@router.callback_query(F.data.regexp(r"^(approve|reject)_\d+$"))
async def decide_submission(call: CallbackQuery, submissions):
    action, raw_id = call.data.split("_", 1)
    submission_id = int(raw_id)
    try:
        submission = await submissions.decide(
            submission_id, APPROVE if action == "approve" else REJECT, call.from_user.id
        )
    except Unauthorized:
        await call.answer("Unauthorized.", show_alert=True)
        return
    except NotFound:
        await call.answer("Submission not found")
        return
    except AlreadyProcessed:
        await call.answer("Already processed.")
        return

    try:
        await call.message.edit_caption(
            caption=(
                f"Submission ID: {submission.id}\nUser: {submission.user_id}\n"
                f"Task ID: {submission.task_id}\nStatus: {submission.status}"
            )
        )
    except TelegramAPIError as e:
        logger.warning("Could not update review message for #%s: %s", submission_id, e)
    await call.answer("Approved." if action == "approve" else "Rejected.")


@router.callback_query(F.data == "show_tasks")
async def show_tasks(call: CallbackQuery, store):
    await call.answer()
    await call.message.answer(await tasks_text(store))


@router.callback_query(F.data == "show_balance")
async def show_balance(call: CallbackQuery, ledger):
    balance = await ledger.balance(call.from_user.id)
    await call.answer()
    await call.message.answer(f"Balance: {format_amount(balance)} TON")


@router.callback_query(F.data == "verify")
async def verify_button(call: CallbackQuery):
    await call.answer("Use /verify to get a verification link.")
