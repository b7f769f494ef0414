"""
Subscriber fan-out.

Delivers one message to many chats concurrently and prunes chats
that can no longer be reached.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable

from ielts_bot.db.state_store import StateStore
from ielts_bot.models import (
    DeliveryOutcome,
    DeliveryResult,
    MessageKind,
    PersistedState,
    ScrapedSnapshot,
)
from ielts_bot.notify.formatters import MessageFormatter
from ielts_bot.notify.telegram import TelegramClient

logger = logging.getLogger(__name__)


class Notifier:
    """
    Sends broadcast messages to subscribers.

    Each recipient is attempted independently: a failure for one chat
    never prevents delivery to the others. Chats whose send fails
    permanently (bot blocked, chat deleted) are unsubscribed. Failed
    sends are not retried within the same cycle.
    """

    def __init__(
        self,
        transport: TelegramClient,
        store: StateStore,
        formatter: MessageFormatter,
        max_workers: int = 8,
    ):
        self.transport = transport
        self.store = store
        self.formatter = formatter
        self.max_workers = max_workers

    def _send_one(self, chat_id: int, message: str) -> DeliveryResult:
        try:
            return self.transport.send_message(chat_id, message)
        except Exception as e:
            logger.error(f"Unexpected error sending to chat {chat_id}: {e}", exc_info=True)
            return DeliveryResult(
                chat_id=chat_id,
                outcome=DeliveryOutcome.TRANSIENT_FAILURE,
                error=str(e),
            )

    def notify(
        self,
        recipients: Iterable[int],
        message: str,
        kind: MessageKind = MessageKind.TEST,
    ) -> Dict[int, DeliveryResult]:
        """
        Send a message to every recipient.

        Args:
            recipients: Chat IDs to deliver to
            message: Formatted message text
            kind: Message kind, used for logging

        Returns:
            Dict mapping each chat ID to its delivery result
        """
        chat_ids = list(dict.fromkeys(recipients))
        if not chat_ids:
            logger.info(f"No subscribers to receive {kind.value} message")
            return {}

        logger.info(f"Sending {kind.value} message to {len(chat_ids)} subscribers")

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(chat_ids))) as pool:
            futures = {
                chat_id: pool.submit(self._send_one, chat_id, message)
                for chat_id in chat_ids
            }
            results = {chat_id: future.result() for chat_id, future in futures.items()}

        for chat_id, result in results.items():
            if result.outcome is DeliveryOutcome.DELIVERED:
                logger.info(f"{kind.value} message sent to chat {chat_id}")
            elif result.outcome is DeliveryOutcome.PERMANENT_FAILURE:
                logger.warning(f"Chat {chat_id} is unreachable ({result.error})")
                if self.store.remove_subscriber(chat_id):
                    logger.info(f"Removed blocked user from subscribers: {chat_id}")
            else:
                logger.error(f"Failed to send {kind.value} message to chat {chat_id}: {result.error}")

        delivered = sum(1 for r in results.values() if r.delivered)
        logger.info(f"{kind.value} message delivered to {delivered}/{len(results)} chats")
        return results

    def send_date_change(
        self, previous: PersistedState, current: ScrapedSnapshot
    ) -> Dict[int, DeliveryResult]:
        """Notify all subscribers that the exam dates changed."""
        message = self.formatter.format_date_change(previous, current)
        return self.notify(self.store.list_subscribers(), message, MessageKind.DATE_CHANGE)

    def send_error(self, cause: str) -> Dict[int, DeliveryResult]:
        """Notify all subscribers that a check failed."""
        message = self.formatter.format_error(cause)
        return self.notify(self.store.list_subscribers(), message, MessageKind.ERROR)

    def send_test(self) -> Dict[int, DeliveryResult]:
        """Send the liveness message to all subscribers."""
        message = self.formatter.format_test()
        return self.notify(self.store.list_subscribers(), message, MessageKind.TEST)
