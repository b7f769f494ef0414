"""
Main orchestrator for the IELTS Monitor Bot.

Coordinates the monitoring workflow on every check:
1. Fetch the IELTS page
2. Extract the exam date (targeted, then fallback strategy)
3. Compare with the stored dates
4. Notify subscribers of changes
5. Record the dates as the new baseline

Chat commands are served by a long-polling loop alongside the checks.
"""

import argparse
import logging
import signal
import sys
import threading
from enum import Enum
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from pydantic import ValidationError

from ielts_bot.commands import CommandContext, dispatch
from ielts_bot.config import Settings, get_settings, setup_logging
from ielts_bot.db import StateBackendError, StateStore, build_backend
from ielts_bot.notify import MessageFormatter, Notifier, TelegramClient, TelegramError
from ielts_bot.scheduler import create_scheduler
from ielts_bot.scrapers import ExamDateScraper, FetchError, PageFetcher

logger = logging.getLogger(__name__)


class MonitorState(str, Enum):
    """Phase of the check currently in progress."""
    IDLE = "idle"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    DIFFING = "diffing"
    NOTIFYING = "notifying"


class TickResult(str, Enum):
    """How a single check ended."""
    BASELINE = "baseline"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED = "skipped"


EXTRACTION_FAILED_MESSAGE = "Web sitesinden veri çekilemedi. Lütfen daha sonra tekrar deneyin."


class IELTSMonitor:
    """
    Main orchestrator for IELTS exam date monitoring.

    Owns no global state: the store, transport and helpers are passed in,
    so tests can swap any of them.
    """

    # Seconds to wait after a failed getUpdates call
    POLL_RETRY_DELAY = 5
    POLL_TIMEOUT = 30
    # Seconds between stop checks while the main thread waits
    STOP_CHECK_INTERVAL = 1.0

    def __init__(
        self,
        settings: Settings,
        store: StateStore,
        fetcher: PageFetcher,
        telegram: TelegramClient,
        scraper: Optional[ExamDateScraper] = None,
        formatter: Optional[MessageFormatter] = None,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize the monitor with all components."""
        self.settings = settings
        self.store = store
        self.fetcher = fetcher
        self.telegram = telegram
        self.scraper = scraper or ExamDateScraper()
        self.formatter = formatter or MessageFormatter(
            target_url=settings.target_url,
            check_interval=settings.check_interval,
            tz_name=settings.timezone,
        )
        self.notifier = notifier or Notifier(telegram, store, self.formatter)

        self.commands = CommandContext(
            store=store,
            formatter=self.formatter,
            is_running=lambda: self.is_running,
        )

        self.state = MonitorState.IDLE
        self.is_running = False

        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._scheduler: Optional[BackgroundScheduler] = None
        self._poller: Optional[threading.Thread] = None
        self._update_offset: Optional[int] = None

        logger.info("IELTS Monitor Bot initialized successfully")

    # Checks

    def check_for_date_changes(self) -> TickResult:
        """
        Run one check: fetch, extract, diff, notify, record.

        Only one check runs at a time; a check requested while another
        is in flight is skipped.

        Returns:
            TickResult: How the check ended
        """
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous check still running, skipping this one")
            return TickResult.SKIPPED

        try:
            return self._run_check()
        except Exception as e:
            logger.error(f"Error during date check: {e}", exc_info=True)
            self.state = MonitorState.NOTIFYING
            self.notifier.send_error(f"Tarih kontrolü sırasında hata oluştu: {e}")
            return TickResult.FAILED
        finally:
            self.state = MonitorState.IDLE
            self._tick_lock.release()

    def _run_check(self) -> TickResult:
        logger.debug("Starting date check...")

        self.state = MonitorState.FETCHING
        try:
            html = self.fetcher.fetch()
        except FetchError as e:
            logger.error(f"Error scraping website: {e}")
            html = None

        self.state = MonitorState.EXTRACTING
        snapshot = None
        if html is not None:
            snapshot = self.scraper.extract_targeted(html)
            if snapshot is None:
                logger.warning("Primary scraping method failed, trying alternative method...")
                snapshot = self.scraper.extract_fallback(html)

        if snapshot is None:
            logger.error("Both scraping methods failed")
            self.state = MonitorState.NOTIFYING
            self.notifier.send_error(EXTRACTION_FAILED_MESSAGE)
            return TickResult.NOT_FOUND

        logger.info(
            f"Scraped data: Exam Date: {snapshot.exam_date}, "
            f"Deadline: {snapshot.application_deadline}"
        )

        self.state = MonitorState.DIFFING
        with self.store.lock:
            was_initialized = self.store.is_initialized
            previous = self.store.snapshot()
            changed = self.store.has_changed(
                snapshot.exam_date, snapshot.application_deadline
            )

            if changed:
                logger.info("Date change detected! Sending notifications...")
                self.state = MonitorState.NOTIFYING
                self.notifier.send_date_change(previous, snapshot)

            self.store.update(snapshot.exam_date, snapshot.application_deadline)

        if not was_initialized:
            logger.info("State initialized with current dates")
            return TickResult.BASELINE
        if changed:
            logger.info("Notifications sent and state updated")
            return TickResult.CHANGED

        logger.debug("No date changes detected")
        return TickResult.UNCHANGED

    # Commands

    def handle_update(self, update: dict) -> Optional[str]:
        """
        Answer one Telegram update.

        Returns:
            The reply sent, or None if the update needed no reply
        """
        message = update.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        text = message.get("text")
        if chat_id is None or not text:
            return None

        reply = dispatch(self.commands, chat_id, text)
        if reply is None:
            return None

        result = self.telegram.send_message(chat_id, reply)
        if not result.delivered:
            logger.error(f"Failed to reply to chat {chat_id}: {result.error}")
        return reply

    def poll_commands(self) -> None:
        """Long-poll Telegram for commands until stop() is called."""
        logger.info("Listening for chat commands...")

        while not self._stop_event.is_set():
            try:
                updates = self.telegram.get_updates(
                    offset=self._update_offset, timeout=self.POLL_TIMEOUT
                )
            except TelegramError as e:
                logger.error(f"Telegram bot polling error: {e}")
                self._stop_event.wait(self.POLL_RETRY_DELAY)
                continue

            for update in updates:
                self._update_offset = update["update_id"] + 1
                try:
                    self.handle_update(update)
                except Exception:
                    logger.exception(f"Error handling update {update.get('update_id')}")

        logger.info("Telegram bot polling stopped")

    # Lifecycle

    def start(self, poll: bool = True) -> None:
        """
        Start scheduled checks and, by default, serve commands until stopped.

        Args:
            poll: Poll for commands on a background thread and block the
                calling thread until stop() is called
        """
        if self.is_running:
            logger.warning("Bot is already running")
            return

        logger.info("Starting IELTS Monitor Bot...")
        self.is_running = True
        self._stop_event.clear()

        logger.info(f"Scheduling checks every {self.settings.check_interval} minutes")
        self._scheduler = create_scheduler(
            job=self.check_for_date_changes,
            interval=self.settings.check_interval_seconds,
            initial_delay=self.settings.initial_check_delay,
        )
        self._scheduler.start()

        if self.settings.send_startup_message:
            self.notifier.send_test()

        logger.info("Bot started successfully and is monitoring for changes")

        if poll:
            # Signals are delivered to the main thread; the long poll runs beside it.
            self._poller = threading.Thread(
                target=self.poll_commands, name="command-poller", daemon=True
            )
            self._poller.start()
            while not self._stop_event.wait(self.STOP_CHECK_INTERVAL):
                pass

    def stop(self) -> None:
        """Stop scheduled checks and command polling."""
        if not self.is_running:
            logger.warning("Bot is not running")
            return

        logger.info("Stopping IELTS Monitor Bot...")
        self.is_running = False
        self._stop_event.set()
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
        self._poller = None
        logger.info("Bot stopped successfully")

    def status(self) -> dict:
        """Current status for the CLI."""
        state = self.store.snapshot()
        return {
            "is_running": self.is_running,
            "phase": self.state.value,
            "last_exam_date": state.last_exam_date,
            "last_application_deadline": state.last_application_deadline,
            "last_notification_sent": (
                state.last_notification_sent.isoformat()
                if state.last_notification_sent else None
            ),
            "is_initialized": state.is_initialized,
            "target_url": self.settings.target_url,
            "check_interval": self.settings.check_interval,
            "subscriber_count": self.store.subscriber_count(),
            "durable_state": self.store.backend.durable,
        }


def build_monitor(settings: Settings) -> IELTSMonitor:
    """Wire up all components from settings."""
    store = StateStore(build_backend(settings))
    fetcher = PageFetcher(url=settings.target_url, timeout=settings.request_timeout)
    telegram = TelegramClient(token=settings.bot_token, timeout=settings.request_timeout)
    return IELTSMonitor(settings, store, fetcher, telegram)


def _print_chat_ids(telegram: TelegramClient) -> int:
    try:
        updates = telegram.get_updates(timeout=0)
    except TelegramError as e:
        print(f"Could not fetch updates: {e}", file=sys.stderr)
        return 1

    if not updates:
        print("No recent messages. Send /start to the bot and try again.")
        return 0

    seen = set()
    for update in updates:
        chat = (update.get("message") or {}).get("chat") or {}
        chat_id = chat.get("id")
        if chat_id is None or chat_id in seen:
            continue
        seen.add(chat_id)
        name = chat.get("title") or chat.get("username") or chat.get("first_name") or ""
        print(f"{chat_id}\t{chat.get('type', '?')}\t{name}")
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ielts-bot",
        description="Monitor Bilkent IELTS exam dates and notify Telegram subscribers.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="run",
        choices=["run", "check", "test-message", "status", "reset-state", "chat-ids"],
        help="what to do (default: run)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Entry point for the IELTS Monitor Bot.

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    args = parse_args(argv)

    try:
        # Validate configuration early
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Please check your environment variables.", file=sys.stderr)
        return 1

    setup_logging(settings)

    if settings.chat_ids:
        logger.warning(
            "CHAT_IDS is set but will be ignored. The bot now uses automatic subscription."
        )

    try:
        monitor = build_monitor(settings)
    except StateBackendError as e:
        print(f"State backend error: {e}", file=sys.stderr)
        return 1

    if args.command == "check":
        result = monitor.check_for_date_changes()
        logger.info(f"Manual check finished: {result.value}")
        return 0 if result not in (TickResult.FAILED, TickResult.NOT_FOUND) else 1

    if args.command == "test-message":
        if not monitor.telegram.test_connection():
            print("Invalid bot token or Telegram unreachable.", file=sys.stderr)
            return 1
        results = monitor.notifier.send_test()
        return 0 if all(r.delivered for r in results.values()) else 1

    if args.command == "status":
        for key, value in monitor.status().items():
            print(f"{key:26} {value}")
        return 0

    if args.command == "reset-state":
        monitor.store.reset()
        return 0

    if args.command == "chat-ids":
        return _print_chat_ids(monitor.telegram)

    def _shutdown(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down gracefully...")
        monitor.stop()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    monitor.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
