"""
modflow
=======

A Discord bot that turns natural-language moderation requests into validated,
multi-step action plans, asks for confirmation before destructive ones, and
executes them.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. MODFLOW_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("MODFLOW_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from modflow.ai.response_generator import ResponseGenerator
from modflow.approval.approval_gate import ApprovalGate
from modflow.bot.discord_executor import DiscordActionExecutor
from modflow.bot.notifier import DiscordNotifier
from modflow.configuration.app_configuration import app_config
from modflow.events.event_bus import EventBus
from modflow.pipeline.command_pipeline import CommandPipeline
from modflow.resolution.action_resolver import ActionResolver
from modflow.util.logger import get_logger, handle_exception
from modflow.workflow.workflow_registry import WorkflowRegistry
from modflow.workflow.workflow_runner import WorkflowRunner


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for reading request text, resolving mentions and moderating members."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def build_pipeline(event_bus: EventBus, gate: ApprovalGate, generator: ResponseGenerator) -> CommandPipeline:
    """Assemble the command pipeline from configuration."""
    resolver = ActionResolver(composite_repeat_limit=app_config.composite_repeat_limit)
    runner = WorkflowRunner(
        executor=DiscordActionExecutor(),
        resolver=resolver,
        event_bus=event_bus,
        registry=WorkflowRegistry(limit=app_config.workflow_history_limit),
    )
    return CommandPipeline(generator=generator, runner=runner, gate=gate)


def create_bot(pipeline: CommandPipeline) -> discord.Bot:
    """Instantiate the Discord bot and register the command listener."""
    from modflow.bot.cogs import command_listener

    bot = discord.Bot(intents=build_intents())
    command_listener.setup(bot, pipeline, app_config.command_prefix)
    logger.info("All cogs loaded successfully.")
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot, notifier: DiscordNotifier, generator: ResponseGenerator) -> None:
    """Stop the Discord client, drop event subscriptions and close the backend client."""
    notifier.close()

    if not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await generator.aclose()
    except Exception as exc:
        logger.exception("Error while closing the generation client: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the bot and the pipeline, returning an exit code."""
    token = load_environment()

    event_bus = EventBus()
    gate = ApprovalGate(event_bus=event_bus)
    generator = ResponseGenerator()

    try:
        pipeline = build_pipeline(event_bus, gate, generator)
        bot = create_bot(pipeline)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        await generator.aclose()
        return 1

    notifier = DiscordNotifier(bot, event_bus, gate)
    notifier.start()

    exit_code = 0
    try:
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, notifier, generator)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting modflow…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
