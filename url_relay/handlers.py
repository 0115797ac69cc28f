from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update, WebAppInfo
from telegram.ext import ContextTypes

from .config import Config
from .notify import Notifier


HELP_TEXT = """URL Relay Bot

Open the Mini App, paste a link and tap Submit URL.
I'll send you a confirmation message once it arrives.

Commands:
/start - Open the Mini App
/help - Show this message"""


def _webapp_keyboard(config: Config) -> InlineKeyboardMarkup | None:
    if not config.webapp_url:
        return None
    button = InlineKeyboardButton("Open Mini App", web_app=WebAppInfo(url=config.webapp_url))
    return InlineKeyboardMarkup([[button]])


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command by offering the Mini App button."""
    config: Config = context.bot_data["config"]
    keyboard = _webapp_keyboard(config)
    if keyboard is None:
        await update.message.reply_text("Mini App is not configured.")
        return
    await update.message.reply_text("Tap to submit a URL:", reply_markup=keyboard)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    await update.message.reply_text(HELP_TEXT)


async def post_init(app) -> None:
    """Send startup notification and start HTTP API if configured."""
    config: Config = app.bot_data["config"]
    chat_id = config.notify_chat_id
    if chat_id:
        try:
            await app.bot.send_message(chat_id, "URL Relay Bot is online!")
        except Exception as e:
            print(f"Startup notification failed: {e}")

    if config.api_port > 0:
        from aiohttp import web as aio_web
        from .web_api import create_web_app

        notifier = Notifier(app.bot, timeout=config.send_timeout)
        web_app = create_web_app(config, notifier.send_confirmation)
        runner = aio_web.AppRunner(web_app)
        await runner.setup()
        site = aio_web.TCPSite(runner, "0.0.0.0", config.api_port)
        await site.start()
        app.bot_data["_api_runner"] = runner
        print(f"HTTP API started on port {config.api_port}")


async def post_shutdown(app) -> None:
    """Clean up the HTTP API server."""
    runner = app.bot_data.get("_api_runner")
    if runner:
        await runner.cleanup()
