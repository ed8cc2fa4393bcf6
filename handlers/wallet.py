# handlers/wallet.py
from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from rewardbot.errors import AlreadyProcessed, InsufficientBalance, NotFound, RailError, WalletMissing
from rewardbot.money import format_amount

router = Router()


@router.message(Command("wallet"))
async def cmd_wallet(message: Message, command: CommandObject, ledger):
    if not command.args:
        await message.answer("Usage: /wallet <TON_wallet_address>")
        return
    try:
        await ledger.set_wallet(message.from_user.id, command.args.split()[0])
    except ValueError:
        await message.answer("Invalid wallet address.")
        return
    await message.answer("Wallet saved.")


@router.message(Command("balance"))
async def cmd_balance(message: Message, ledger):
    balance = await ledger.balance(message.from_user.id)
    await message.answer(f"Your balance: {format_amount(balance)} TON")


@router.message(Command("withdraw"))
async def cmd_withdraw(message: Message, ledger, settings):
    try:
        receipt = await ledger.withdraw(message.from_user.id)
    except NotFound:
        await message.answer("Please /start first.")
    except WalletMissing:
        await message.answer("Set your TON wallet first with /wallet <address>.")
    except InsufficientBalance as e:
        await message.answer(
            f"Minimum withdrawal is {format_amount(settings.min_withdrawal)} TON. "
            f"Your balance: {format_amount(e.available)}"
        )
    except AlreadyProcessed:
        await message.answer("A withdrawal is already being processed.")
    except RailError as e:
        await message.answer(f"Withdrawal failed: {e.reason}. Your balance was not changed.")
    else:
        await message.answer(
            f"Withdrawal of {format_amount(receipt.amount)} TON processed. TX: {receipt.tx_id}"
        )
