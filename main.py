"""Точка входа: Telegram-бот и HTTP API в одном event loop."""
import asyncio
import logging

import uvicorn
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from api import create_app
from config import API_HOST, API_PORT, NOTIFY_TIMEOUT, STAFF_CHAT_ID, require_bot_token
from db import create_table
from handlers import orders, report
from notifications import TelegramNotifier
from services import OrderService, StatusController

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main() -> None:
    """Основная функция запуска бота и API."""
    bot = Bot(
        token=require_bot_token(),
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )

    # Уведомления настраиваются один раз и живут всё время процесса
    notifier = TelegramNotifier(bot, STAFF_CHAT_ID, timeout=NOTIFY_TIMEOUT)
    order_service = OrderService(notifier.notify_customer, notifier.notify_staff)
    status_controller = StatusController(notifier.notify_customer)

    dp = Dispatcher(order_service=order_service, status_controller=status_controller)
    dp.include_router(report.router)
    dp.include_router(orders.router)

    try:
        await create_table()
        logger.info("База данных инициализирована")
    except Exception as e:
        logger.error(f"Ошибка при инициализации БД: {e}", exc_info=True)
        await bot.session.close()
        return

    if not STAFF_CHAT_ID:
        logger.warning("STAFF_CHAT_ID не задан: заказы не будут отправляться фермерам")

    app = create_app(order_service, status_controller)
    server = uvicorn.Server(
        uvicorn.Config(app, host=API_HOST, port=API_PORT, log_level="info")
    )
    api_task = asyncio.create_task(server.serve())
    logger.info(f"API запущено на {API_HOST}:{API_PORT}")

    logger.info("Бот запущен (long polling)")
    try:
        await dp.start_polling(
            bot,
            allowed_updates=["message", "callback_query"]
        )
    except Exception as e:
        logger.error(f"Ошибка при запуске бота: {e}", exc_info=True)
    finally:
        server.should_exit = True
        try:
            await api_task
        except asyncio.CancelledError:
            pass
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Бот остановлен пользователем")
