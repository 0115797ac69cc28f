"""Tests for bot command handlers and startup hooks."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram import InlineKeyboardMarkup
from telegram.error import NetworkError

from url_relay.config import Config
from url_relay.handlers import HELP_TEXT, help_command, post_init, post_shutdown, start_command


def _make_context(config: Config) -> MagicMock:
    context = MagicMock()
    context.bot_data = {"config": config}
    return context


def _make_update() -> MagicMock:
    update = MagicMock()
    update.message.reply_text = AsyncMock()
    return update


def _make_app(config: Config) -> MagicMock:
    app = MagicMock()
    app.bot_data = {"config": config}
    app.bot.send_message = AsyncMock()
    return app


class TestStartCommand:
    @pytest.mark.asyncio
    async def test_offers_webapp_button(self):
        config = Config(telegram_token="t", webapp_url="https://miniapp.example/")
        update = _make_update()
        await start_command(update, _make_context(config))

        update.message.reply_text.assert_awaited_once()
        markup = update.message.reply_text.await_args.kwargs["reply_markup"]
        assert isinstance(markup, InlineKeyboardMarkup)
        button = markup.inline_keyboard[0][0]
        assert button.web_app.url == "https://miniapp.example/"

    @pytest.mark.asyncio
    async def test_not_configured(self):
        update = _make_update()
        await start_command(update, _make_context(Config(telegram_token="t")))
        update.message.reply_text.assert_awaited_once_with("Mini App is not configured.")


class TestHelpCommand:
    @pytest.mark.asyncio
    async def test_replies_with_help(self):
        update = _make_update()
        await help_command(update, _make_context(Config(telegram_token="t")))
        update.message.reply_text.assert_awaited_once_with(HELP_TEXT)


class TestPostInit:
    @pytest.mark.asyncio
    async def test_startup_notification(self):
        app = _make_app(Config(telegram_token="t", notify_chat_id=-100123))
        await post_init(app)
        app.bot.send_message.assert_awaited_once_with(-100123, "URL Relay Bot is online!")
        assert "_api_runner" not in app.bot_data

    @pytest.mark.asyncio
    async def test_no_notify_chat(self):
        app = _make_app(Config(telegram_token="t"))
        await post_init(app)
        app.bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_stop_startup(self):
        app = _make_app(Config(telegram_token="t", notify_chat_id=1))
        app.bot.send_message.side_effect = NetworkError("down")
        await post_init(app)

    @pytest.mark.asyncio
    async def test_starts_and_stops_api(self):
        app = _make_app(Config(telegram_token="t", api_port=8443))
        runner = MagicMock()
        runner.setup = AsyncMock()
        runner.cleanup = AsyncMock()
        site = MagicMock()
        site.start = AsyncMock()
        with patch("aiohttp.web.AppRunner", return_value=runner) as runner_cls, \
                patch("aiohttp.web.TCPSite", return_value=site) as site_cls:
            await post_init(app)

        web_app = runner_cls.call_args.args[0]
        assert web_app["verifier"] == app.bot_data["config"].verifier()
        site_cls.assert_called_once_with(runner, "0.0.0.0", 8443)
        site.start.assert_awaited_once()
        assert app.bot_data["_api_runner"] is runner

        await post_shutdown(app)
        runner.cleanup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_without_api(self):
        app = _make_app(Config(telegram_token="t"))
        await post_shutdown(app)
