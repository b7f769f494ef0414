"""Telegram notification module for the IELTS Monitor Bot."""

from ielts_bot.notify.formatters import MessageFormatter
from ielts_bot.notify.notifier import Notifier
from ielts_bot.notify.telegram import TelegramClient, TelegramError

__all__ = ["MessageFormatter", "Notifier", "TelegramClient", "TelegramError"]
