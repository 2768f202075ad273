"""Команды отчётов: статистика, поиск, рейтинги, выгрузки."""
import logging
from datetime import datetime
from html import escape
from typing import Optional

from aiogram import F, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import BufferedInputFile, Message

import reporting
from cards import format_money, format_order_line, status_display
from config import TOP_DEFAULT, TOP_MAX
from errors import InvalidStatusError
from exports import build_orders_pdf, build_orders_xlsx
from handlers.orders import is_staff_chat
from keyboards import (
    BUTTON_COUNTS,
    BUTTON_HELP,
    BUTTON_STATS,
    BUTTON_TODAY,
    BUTTON_TOP_CLIENTS,
    BUTTON_TOP_PRODUCTS,
    get_main_keyboard,
)
from models import Order, OrderStatus
from reporting import ClientTotal, PeriodStats, ProductTotal, Period, SearchResult

logger = logging.getLogger(__name__)
router = Router()

LIST_LIMIT = 10
TODAY_LIMIT = 30

HELP_TEXT = (
    "👋 Bot des commandes de la Ferme O'Neil\n\n"
    "Chaque nouvelle commande du site arrive ici avec des boutons:\n"
    "Accepter | En préparation | Terminée | En livraison | Livrée\n"
    "Le client reçoit un message privé à chaque changement de statut.\n\n"
    "Répondez à une commande avec du texte pour changer son commentaire.\n\n"
    "📋 Commandes:\n"
    "/commandes [statut] — nombre de commandes par statut\n"
    "/jour — commandes du jour\n"
    "/recherche &lt;nom ou n° à 6 chiffres&gt; — recherche\n"
    "/stats [jour|semaine|mois|tout] — statistiques de la période\n"
    "/top_clients [n] — meilleurs clients\n"
    "/top_produits [n] — produits les plus vendus\n"
    "/statut &lt;id&gt; &lt;statut&gt; — changer un statut à la main\n"
    "/export [période] [xlsx|pdf] — export des commandes"
)


def parse_top_n(arg: Optional[str]) -> int:
    """Число для рейтинга: по умолчанию TOP_DEFAULT, не больше TOP_MAX."""
    try:
        n = int((arg or "").strip() or TOP_DEFAULT)
    except ValueError:
        n = TOP_DEFAULT
    return max(1, min(n, TOP_MAX))


def format_status_counts(counts: dict[OrderStatus, int]) -> str:
    lines = ["📈 <b>Statistiques des commandes</b>"]
    for status in OrderStatus:
        lines.append(f"{status_display(status)}: {counts.get(status, 0)}")
    lines.append(f"\nTotal: {sum(counts.values())}")
    return "\n".join(lines)


def format_order_list(title: str, orders: list[Order], limit: int) -> str:
    if not orders:
        return f"{title}\n📭 Aucune commande"
    lines = [title]
    lines += [format_order_line(o) for o in orders[:limit]]
    if len(orders) > limit:
        lines.append(f"… et {len(orders) - limit} autres")
    return "\n".join(lines)


def format_search_result(term: str, result: SearchResult) -> str:
    if not result.orders:
        return f"🔎 Aucun résultat pour «{escape(term)}»"
    lines = [f"🔎 Résultats pour «{escape(term)}»:"]
    lines += [format_order_line(o) for o in result.orders]
    if result.has_more:
        lines.append(f"… d'autres résultats existent, seuls les {len(result.orders)} plus récents sont affichés")
    return "\n".join(lines)


def format_period_stats(stats: PeriodStats) -> str:
    lines = [
        f"📊 <b>{stats.period.label}</b>",
        f"Du {stats.start.strftime('%d/%m/%Y %H:%M')} au {stats.end.strftime('%d/%m/%Y %H:%M')}",
        "",
        f"Commandes: {stats.order_count}",
        f"Chiffre d'affaires: {format_money(stats.revenue)}",
        "",
    ]
    for status, count in stats.by_status.items():
        lines.append(f"{status_display(status)}: {count}")
    return "\n".join(lines)


def format_top_clients(clients: list[ClientTotal]) -> str:
    if not clients:
        return "🏆 Aucune commande pour l'instant"
    lines = ["🏆 <b>Meilleurs clients</b>"]
    for i, c in enumerate(clients, 1):
        lines.append(f"{i}. {escape(c.customer_name)} — {format_money(c.total)} ({c.order_count} commandes)")
    return "\n".join(lines)


def format_top_products(products: list[ProductTotal]) -> str:
    if not products:
        return "🥕 Aucun produit vendu pour l'instant"
    lines = ["🥕 <b>Produits les plus vendus</b>"]
    for i, p in enumerate(products, 1):
        lines.append(f"{i}. {escape(p.product_name or p.product_id)} — {p.quantity} unités, {format_money(p.revenue)}")
    return "\n".join(lines)


@router.message(Command("start", "help", "aide"))
@router.message(F.text == BUTTON_HELP)
async def cmd_help(message: Message) -> None:
    """Обработка команд /start, /help и /aide."""
    if not is_staff_chat(message.chat.id):
        # клиенту нужен его chat id, чтобы указать его в форме заказа
        await message.reply(
            "👋 Bonjour! Vous recevrez ici le suivi de vos commandes de la Ferme O'Neil.\n\n"
            f"Votre identifiant pour le formulaire: <code>{message.chat.id}</code>"
        )
        return
    await message.reply(HELP_TEXT, reply_markup=get_main_keyboard())


async def _send_status_overview(message: Message, status_arg: Optional[str]) -> None:
    if status_arg:
        status = OrderStatus.parse(status_arg)
        orders = await reporting.find_by_status(status)
        await message.reply(
            format_order_list(f"{status_display(status)} — {len(orders)} commandes", orders, LIST_LIMIT)
        )
        return
    counts = await reporting.count_by_status()
    await message.reply(format_status_counts(counts))


@router.message(Command("commandes"))
async def cmd_orders(message: Message, command: CommandObject) -> None:
    """Количество заказов по статусам или список заказов одного статуса."""
    if not is_staff_chat(message.chat.id):
        return
    try:
        await _send_status_overview(message, command.args)
    except InvalidStatusError:
        await message.reply(f"⚠️ Statut inconnu. Disponibles: {', '.join(s.value for s in OrderStatus)}")
    except Exception as e:
        logger.error(f"Ошибка при получении статистики заказов: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors de la récupération des statistiques.")


@router.message(F.text == BUTTON_COUNTS)
async def counts_button(message: Message) -> None:
    if not is_staff_chat(message.chat.id):
        return
    try:
        await _send_status_overview(message, None)
    except Exception as e:
        logger.error(f"Ошибка при получении статистики заказов: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors de la récupération des statistiques.")


@router.message(Command("jour"))
@router.message(F.text == BUTTON_TODAY)
async def cmd_today(message: Message) -> None:
    """Заказы за сегодня."""
    if not is_staff_chat(message.chat.id):
        return
    try:
        orders = await reporting.orders_today()
        title = f"📅 Commandes du {datetime.now().strftime('%d/%m/%Y')} — {len(orders)}"
        await message.reply(format_order_list(title, orders, TODAY_LIMIT))
    except Exception as e:
        logger.error(f"Ошибка при получении заказов за день: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors de la récupération des commandes du jour.")


@router.message(Command("recherche"))
async def cmd_search(message: Message, command: CommandObject) -> None:
    """Поиск по номеру (6 цифр) или по имени клиента."""
    if not is_staff_chat(message.chat.id):
        return
    term = (command.args or "").strip()
    if not term:
        await message.reply("⚠️ Utilisation: /recherche &lt;nom ou n° à 6 chiffres&gt;")
        return
    try:
        result = await reporting.search(term)
        await message.reply(format_search_result(term, result))
    except Exception as e:
        logger.error(f"Ошибка при поиске {term!r}: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors de la recherche.")


async def _send_period_stats(message: Message, period: Period) -> None:
    stats = await reporting.get_period_stats(period)
    await message.reply(format_period_stats(stats))


@router.message(Command("stats"))
async def cmd_stats(message: Message, command: CommandObject) -> None:
    """Статистика за период: /stats [jour|semaine|mois|tout]."""
    if not is_staff_chat(message.chat.id):
        return
    try:
        period = Period.parse(command.args)
    except ValueError:
        await message.reply("⚠️ Période inconnue. Disponibles: jour, semaine, mois, tout")
        return
    try:
        await _send_period_stats(message, period)
    except Exception as e:
        logger.error(f"Ошибка при расчёте статистики: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors du calcul des statistiques.")


@router.message(F.text == BUTTON_STATS)
async def stats_button(message: Message) -> None:
    if not is_staff_chat(message.chat.id):
        return
    try:
        await _send_period_stats(message, Period.THIS_MONTH)
    except Exception as e:
        logger.error(f"Ошибка при расчёте статистики: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors du calcul des statistiques.")


@router.message(Command("top_clients"))
@router.message(F.text == BUTTON_TOP_CLIENTS)
async def cmd_top_clients(message: Message, command: Optional[CommandObject] = None) -> None:
    """Рейтинг клиентов по сумме заказов."""
    if not is_staff_chat(message.chat.id):
        return
    try:
        clients = await reporting.get_top_clients(parse_top_n(command.args if command else None))
        await message.reply(format_top_clients(clients))
    except Exception as e:
        logger.error(f"Ошибка при расчёте рейтинга клиентов: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors du calcul du classement.")


@router.message(Command("top_produits"))
@router.message(F.text == BUTTON_TOP_PRODUCTS)
async def cmd_top_products(message: Message, command: Optional[CommandObject] = None) -> None:
    """Рейтинг товаров по количеству."""
    if not is_staff_chat(message.chat.id):
        return
    try:
        products = await reporting.get_top_products(parse_top_n(command.args if command else None))
        await message.reply(format_top_products(products))
    except Exception as e:
        logger.error(f"Ошибка при расчёте рейтинга товаров: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors du calcul du classement.")


@router.message(Command("export"))
async def cmd_export(message: Message, command: CommandObject) -> None:
    """Выгрузка заказов за период: /export [période] [xlsx|pdf]."""
    if not is_staff_chat(message.chat.id):
        return

    fmt = "xlsx"
    period_arg = None
    for arg in (command.args or "").split():
        if arg.lower() in ("xlsx", "pdf"):
            fmt = arg.lower()
        else:
            period_arg = arg

    try:
        period = Period.parse(period_arg) if period_arg else Period.THIS_MONTH
    except ValueError:
        await message.reply("⚠️ Période inconnue. Disponibles: jour, semaine, mois, tout")
        return

    try:
        start, end = reporting.period_window(period)
        orders = await reporting.find_by_date_range(start, end)
        if not orders:
            await message.reply("📋 Aucune commande sur cette période")
            return

        title = f"Commandes - {period.label}"
        if fmt == "pdf":
            content = build_orders_pdf(orders, title)
        else:
            content = build_orders_xlsx(orders, period.label)

        filename = f"commandes-{period.value}-{datetime.now().strftime('%Y%m%d')}.{fmt}"
        await message.reply_document(
            document=BufferedInputFile(content, filename=filename),
            caption=f"📊 {title} ({len(orders)})",
        )
        logger.info(f"Выгрузка {fmt} за {period.value} отправлена, записей: {len(orders)}")
    except Exception as e:
        logger.error(f"Ошибка при выгрузке заказов: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors de l'export")
