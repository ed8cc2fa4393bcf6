import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiohttp import web

from config import load_settings
from handlers import admin as admin_handlers
from handlers import start, tasks, wallet
from handlers.access import AccessMiddleware
from rewardbot.admin import AdminService
from rewardbot.database.db import init_db, make_engine, make_sessionmaker
from rewardbot.database.store import Store
from rewardbot.identity import IdentityRegistry
from rewardbot.ledger import Ledger
from rewardbot.membership import ChannelMembership
from rewardbot.notify import TelegramNotifier
from rewardbot.onboarding import Onboarding
from rewardbot.rail import XRocketRail
from rewardbot.referrals import ReferralEngine
from rewardbot.submissions import SubmissionWorkflow
from rewardbot.web import create_app

logger = logging.getLogger(__name__)


async def main():
    settings = load_settings()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level,
    )

    engine = make_engine(settings.database_url)
    await init_db(engine)
    store = Store(make_sessionmaker(engine))

    bot = Bot(settings.telegram_token)
    notifier = TelegramNotifier(bot, settings.admin_ids, timeout=settings.notify_timeout)
    membership = ChannelMembership(bot, settings.force_channel)
    rail = XRocketRail(settings.xrocket_api_base, settings.xrocket_token, timeout=settings.xrocket_timeout)

    ledger = Ledger(store, rail, settings)
    identity = IdentityRegistry(store, notifier)
    referrals = ReferralEngine(store, ledger, rail, notifier, settings)

    dp = Dispatcher(
        settings=settings,
        store=store,
        ledger=ledger,
        identity=identity,
        submissions=SubmissionWorkflow(store, notifier, settings),
        onboarding=Onboarding(store, membership, ledger, referrals),
        admin=AdminService(store, notifier, settings),
    )
    access = AccessMiddleware(store, membership, settings)
    dp.message.outer_middleware(access)
    dp.callback_query.outer_middleware(access)
    dp.include_routers(start.router, tasks.router, wallet.router, admin_handlers.router)

    runner = web.AppRunner(create_app(identity))
    await runner.setup()
    await web.TCPSite(runner, settings.device_host, settings.device_port).start()
    logger.info("Device verification endpoint on %s:%s", settings.device_host, settings.device_port)

    try:
        logger.info("Бот запущен")
        await dp.start_polling(bot)
    finally:
        await runner.cleanup()
        await rail.close()
        await bot.session.close()
        await engine.dispose()
        logger.info("Бот остановлен")


if __name__ == "__main__":
    asyncio.run(main())
