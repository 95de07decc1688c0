"""
Houston Discord Bot
===================

Rule-based auto-moderation for Discord, controlled by the Houston backend.
The bot evaluates every guild message against the rules cached from the
backend and serves a small REST API the backend uses to push rules and
request administrative actions.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. HOUSTON_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("HOUSTON_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


import asyncio

import discord
from dotenv import load_dotenv

from houston.util.logger import get_logger, handle_exception

logger = get_logger("main")

BASE_DIR = resolve_base_dir()


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises:
        SystemExit: If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Construct the intents needed for message moderation and punishment tracking."""
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.messages = True
    intents.message_content = True
    intents.moderation = True
    return intents


def create_bot(runtime) -> discord.Bot:
    """Instantiate the Discord bot, attach it to ``runtime`` and register all cogs."""
    from houston.bot.cogs import events_listener, message_listener

    bot = discord.Bot(intents=build_intents())
    runtime.attach_bot(bot)
    events_listener.setup(bot, runtime)
    message_listener.setup(bot, runtime)
    logger.info("All cogs loaded successfully.")
    return bot


async def shutdown_runtime(bot: discord.Bot | None, api_service, runtime) -> None:
    """Stop the API server, close the Discord connection and release backend resources."""
    try:
        await api_service.stop()
    except Exception as exc:
        logger.exception("Error stopping API service: %s", exc)

    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error closing Discord client: %s", exc)

    try:
        await runtime.close()
    except Exception as exc:
        logger.exception("Error during runtime shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the runtime, API and bot, returning an exit code."""
    token = load_environment()

    from houston.api.server import APIService
    from houston.bot.runtime import HoustonRuntime
    from houston.configuration.app_configuration import app_config

    runtime = HoustonRuntime(app_config)
    try:
        bot = create_bot(runtime)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await runtime.close()
        return 1

    api_service = APIService(runtime, app_config.api_host, app_config.api_port)
    exit_code = 0
    try:
        await api_service.start()
        logger.info("Attempting to connect to Discord…")
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Bot start cancelled; proceeding to shutdown")
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, api_service, runtime)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    sys.excepthook = handle_exception
    os.chdir(BASE_DIR)
    logger.info("Starting Houston…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 0 if code is None else 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
