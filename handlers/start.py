# handlers/start.py
from urllib.parse import quote

from aiogram import Bot, Router, types
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from handlers.access import BANNED_TEXT, requirement_steps
from rewardbot.access import Tier
from rewardbot.errors import Unauthorized
from rewardbot.money import format_amount

router = Router()

MENU_TEXT = (
    "Commands:\n"
    "/verify - verify this device\n"
    "/wallet <address>\n"
    "/tasks\n"
    "/submit <task_id> (attach photo)\n"
    "/balance\n"
    "/withdraw\n"
    "/referralcode"
)


def main_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="Tasks", callback_data="show_tasks"),
            InlineKeyboardButton(text="Balance", callback_data="show_balance"),
        ],
        [InlineKeyboardButton(text="Verify", callback_data="verify")],
    ])


@router.message(CommandStart())
async def cmd_start(message: types.Message, command: CommandObject, onboarding, settings):
    result = await onboarding.start(message.from_user.id, command.args)

    if result.tier is Tier.BANNED:
        await message.answer(BANNED_TEXT)
        return

    if result.missing:
        steps = requirement_steps(result.missing, settings.force_channel)
        numbered = "\n".join(f"{i}. {step}" for i, step in enumerate(steps, 1))
        await message.answer(
            f"Welcome! To use this bot, you must:\n\n{numbered}\n\n"
            f"Use /verify to get a verification link, then join {settings.force_channel}, "
            f"then send /start again."
        )
        return

    if result.bonus_credited:
        await message.answer(
            f"Welcome! You've received a new user bonus of {format_amount(settings.new_user_bonus)} TON."
        )
    else:
        await message.answer("Welcome back!")
    await message.answer(
        f"Hi {message.from_user.first_name}!\n\n{MENU_TEXT}",
        reply_markup=main_keyboard(),
    )


@router.message(Command("verify"))
async def cmd_verify(message: types.Message, identity, settings):
    try:
        token = await identity.issue_token(message.from_user.id)
    except Unauthorized:
        await message.answer(BANNED_TEXT)
        return

    link = f"{settings.verify_site_url}?token={quote(token)}"
    await message.answer(
        "Open this link in the Telegram in-app browser on the device you want to verify:\n\n"
        f"{link}\n\nThe page will redirect to the bot to finish verification."
    )


@router.message(Command("referralcode"))
async def cmd_referral_code(message: types.Message, bot: Bot):
    me = await bot.get_me()
    await message.answer(f"Share this referral link: https://t.me/{me.username}?start={message.from_user.id}")


@router.message(Command("ping"))
async def cmd_ping(message: types.Message):
    await message.answer("pong")


@router.message(Command("setdevice"))
async def cmd_set_device(message: types.Message):
    await message.answer(
        "Use /verify (recommended) to link this device. "
        "You will receive a link to open in your Telegram browser."
    )
