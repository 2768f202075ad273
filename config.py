"""Конфигурация бота заказов фермы."""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

TG_BOT_TOKEN = os.getenv("TG_BOT_TOKEN", "")

# Канал/группа фермеров, куда уходят карточки заказов с кнопками
STAFF_CHAT_ID = os.getenv("STAFF_CHAT_ID", "")

# Определяем путь к базе данных
data_dir = Path(__file__).parent / "data"

DB_PATH = os.getenv("DB_PATH") or str(data_dir / "orders.db")
# Создаем папку, если её нет
Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "3000"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Таймаут на одну отправку в Telegram, секунды
NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", "10"))

SEARCH_PAGE_SIZE = 10
TOP_DEFAULT = 5
TOP_MAX = 25
TOTAL_TOLERANCE = "0.01"


def require_bot_token() -> str:
    """Возвращает токен бота или падает, если он не задан."""
    if not TG_BOT_TOKEN:
        raise ValueError("TG_BOT_TOKEN не найден в .env")
    return TG_BOT_TOKEN
