"""
State store for change detection and subscriptions.

Owns the bot's PersistedState: the last observed exam date pair and
the set of subscribed chats. Every mutation is written through to the
configured backend.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import List, Optional

from ielts_bot.db.backends import StateBackend
from ielts_bot.models import PersistedState

logger = logging.getLogger(__name__)


class StateStore:
    """
    Change detection and subscriber management over a StateBackend.

    A date pair is "changed" only relative to a baseline: until the
    first successful extraction has been recorded with update(),
    has_changed() always returns False.

    Scheduled checks and command handlers run on different threads,
    so every public method holds the store lock.
    """

    def __init__(self, backend: StateBackend):
        """
        Initialize the store and load any saved state.

        Args:
            backend: Where the state is loaded from and saved to
        """
        self.backend = backend
        self._lock = threading.RLock()
        self._state = backend.load() or PersistedState()

        if not backend.durable:
            logger.warning(
                "State backend is not durable: dates and subscribers are lost on restart"
            )

    @property
    def lock(self) -> threading.RLock:
        """Lock to hold across multi-step read-modify-write sequences."""
        return self._lock

    def _save(self) -> None:
        try:
            self.backend.save(self._state)
        except Exception as e:
            # The in-memory state stays authoritative until the next successful save
            logger.error(f"Error saving state: {e}")

    # Date management

    def has_changed(self, exam_date: str, application_deadline: str) -> bool:
        """
        Check whether the scraped dates differ from the stored ones.

        Args:
            exam_date: Newly scraped exam date
            application_deadline: Newly scraped application deadline

        Returns:
            bool: False before the baseline is set, otherwise True if
            either value differs from the stored value
        """
        with self._lock:
            if not self._state.is_initialized:
                logger.info("First run - initializing with current dates")
                return False

            return (
                self._state.last_exam_date != exam_date
                or self._state.last_application_deadline != application_deadline
            )

    def update(self, exam_date: str, application_deadline: str) -> None:
        """
        Record the latest scraped dates and mark the store initialized.

        Args:
            exam_date: Newly scraped exam date
            application_deadline: Newly scraped application deadline
        """
        with self._lock:
            changed = (
                self._state.last_exam_date != exam_date
                or self._state.last_application_deadline != application_deadline
            )

            self._state.last_exam_date = exam_date
            self._state.last_application_deadline = application_deadline
            self._state.last_notification_sent = datetime.now(timezone.utc)
            self._state.is_initialized = True

            self._save()

        if changed:
            logger.info("Exam date information updated")

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._state.is_initialized

    @property
    def last_notification_sent(self) -> Optional[datetime]:
        with self._lock:
            return self._state.last_notification_sent

    def snapshot(self) -> PersistedState:
        """Return a deep copy of the current state."""
        with self._lock:
            return self._state.model_copy(deep=True)

    # Chat ID management

    def add_subscriber(self, chat_id: int) -> bool:
        """
        Subscribe a chat.

        Returns:
            bool: True if the chat was newly added, False if already subscribed
        """
        with self._lock:
            if chat_id in self._state.subscribed_chat_ids:
                return False
            self._state.subscribed_chat_ids.append(chat_id)
            self._save()

        logger.info(f"Added new chat ID: {chat_id}")
        return True

    def remove_subscriber(self, chat_id: int) -> bool:
        """
        Unsubscribe a chat.

        Returns:
            bool: True if the chat was subscribed and has been removed
        """
        with self._lock:
            if chat_id not in self._state.subscribed_chat_ids:
                return False
            self._state.subscribed_chat_ids.remove(chat_id)
            self._save()

        logger.info(f"Removed chat ID: {chat_id}")
        return True

    def is_subscriber(self, chat_id: int) -> bool:
        with self._lock:
            return chat_id in self._state.subscribed_chat_ids

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._state.subscribed_chat_ids)

    def list_subscribers(self) -> List[int]:
        """Return a copy of the subscribed chat IDs in subscription order."""
        with self._lock:
            return list(self._state.subscribed_chat_ids)

    def reset(self) -> None:
        """Forget the stored dates and all subscribers."""
        with self._lock:
            self._state = PersistedState()
            self._save()

        logger.info("State has been reset")
