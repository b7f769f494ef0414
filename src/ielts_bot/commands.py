"""
Chat command handling.

Commands are plain functions registered in a dispatch table. Each
handler takes the command context and the calling chat and returns the
reply text; subscription changes go through the state store.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ielts_bot.db.state_store import StateStore
from ielts_bot.notify.formatters import MessageFormatter

logger = logging.getLogger(__name__)


@dataclass
class CommandContext:
    """Everything a command handler may read or change."""

    store: StateStore
    formatter: MessageFormatter
    is_running: Callable[[], bool] = lambda: True


CommandHandler = Callable[[CommandContext, int], str]


def cmd_start(ctx: CommandContext, chat_id: int) -> str:
    """Subscribe the chat and send the welcome text."""
    is_new = ctx.store.add_subscriber(chat_id)
    logger.info(f"User interaction: {chat_id} ({'new' if is_new else 'existing'})")
    return ctx.formatter.format_welcome(is_new, ctx.store.subscriber_count())


def cmd_status(ctx: CommandContext, chat_id: int) -> str:
    return ctx.formatter.format_status(
        running=ctx.is_running(),
        subscriber_count=ctx.store.subscriber_count(),
        is_subscribed=ctx.store.is_subscriber(chat_id),
        state=ctx.store.snapshot(),
    )


def cmd_subscribe(ctx: CommandContext, chat_id: int) -> str:
    is_new = ctx.store.add_subscriber(chat_id)
    if is_new:
        logger.info(f"User subscribed: {chat_id}")
    return ctx.formatter.format_subscribed(is_new, ctx.store.subscriber_count())


def cmd_unsubscribe(ctx: CommandContext, chat_id: int) -> str:
    was_removed = ctx.store.remove_subscriber(chat_id)
    if was_removed:
        logger.info(f"User unsubscribed: {chat_id}")
    return ctx.formatter.format_unsubscribed(was_removed, ctx.store.subscriber_count())


def cmd_help(ctx: CommandContext, chat_id: int) -> str:
    return ctx.formatter.format_help()


COMMANDS: Dict[str, CommandHandler] = {
    "start": cmd_start,
    "status": cmd_status,
    "subscribe": cmd_subscribe,
    "unsubscribe": cmd_unsubscribe,
    "help": cmd_help,
}


def parse_command(text: Optional[str]) -> Optional[str]:
    """
    Extract the command name from a message.

    Accepts "/status", "/status@SomeBot" and "/status extra words".

    Returns:
        Lower-case command name, or None if the text is not a command
    """
    if not text or not text.startswith("/"):
        return None

    token = text.split(maxsplit=1)[0][1:]
    name = token.split("@", 1)[0].lower()
    return name or None


def dispatch(ctx: CommandContext, chat_id: int, text: Optional[str]) -> Optional[str]:
    """
    Run the handler for a message.

    Returns:
        Reply text, or None for plain text and unknown commands
    """
    name = parse_command(text)
    if name is None:
        return None

    handler = COMMANDS.get(name)
    if handler is None:
        logger.debug(f"Ignoring unknown command /{name} from chat {chat_id}")
        return None

    return handler(ctx, chat_id)
