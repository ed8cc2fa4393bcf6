# handlers/admin.py
from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from rewardbot.errors import AlreadyProcessed, NotFound
from rewardbot.money import to_units
from rewardbot.submissions import APPROVE, REJECT

router = Router()

USAGE = (
    "Admin commands:\n"
    "/admin broadcast <text>\n"
    "/admin addtask [reward=<TON>] <desc>\n"
    "/admin ban <user_id>\n"
    "/admin approve <submission_id>\n"
    "/admin reject <submission_id>"
)


def parse_addtask(args: str):
    """'reward=0.05 Follow us' -> ('Follow us', 50000); reward is optional."""
    reward = None
    first, _, rest = args.partition(" ")
    if first.startswith("reward="):
        reward = to_units(first[len("reward="):])
        args = rest
    return args.strip(), reward


@router.message(Command("admin"))
async def cmd_admin(message: Message, command: CommandObject, admin, submissions, settings):
    if not settings.is_admin(message.from_user.id):
        await message.answer("Unauthorized.")
        return

    action, _, args = (command.args or "").strip().partition(" ")
    args = args.strip()

    if action == "broadcast" and args:
        sent, attempted = await admin.broadcast(args)
        await message.answer(f"Broadcast sent to {sent} users (attempted {attempted}).")

    elif action == "addtask":
        try:
            description, reward = parse_addtask(args)
            task = await admin.add_task(description, reward)
        except ValueError:
            await message.answer("Usage: /admin addtask [reward=<TON>] <description>")
            return
        await message.answer(f"Task added. ID: {task.id}")

    elif action == "ban":
        if not args.isdigit():
            await message.answer("Usage: /admin ban <user_id>")
            return
        try:
            await admin.ban(int(args))
        except NotFound:
            await message.answer("User not found.")
            return
        await message.answer(f"User {args} banned.")

    elif action in (APPROVE, REJECT):
        if not args.isdigit():
            await message.answer(f"Usage: /admin {action} <submission_id>")
            return
        try:
            await submissions.decide(int(args), action, message.from_user.id)
        except NotFound:
            await message.answer("Submission not found.")
            return
        except AlreadyProcessed:
            await message.answer("Submission already processed.")
            return
        await message.answer("Submission approved." if action == APPROVE else "Submission rejected.")

    else:
        await message.answer(USAGE)
