#!/usr/bin/env python

import configparser
import sys

from telegram.ext import Application, CommandHandler

from url_relay.config import ConfigError, load_config
from url_relay.handlers import help_command, post_init, post_shutdown, start_command


def main():
    import argparse

    parser = argparse.ArgumentParser(description="URL relay Telegram bot and Mini App API")
    parser.add_argument("-c", "--config", type=str, default="config.ini", help="Path to config file")
    args = parser.parse_args()

    config_file = configparser.ConfigParser()
    config_file.read(args.config)
    try:
        config = load_config(config_file)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    app = (
        Application.builder()
        .token(config.telegram_token)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    app.bot_data["config"] = config

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))

    print("Bot started...")
    app.run_polling()


if __name__ == "__main__":
    main()
