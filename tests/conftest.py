"""Shared fixtures for the IELTS Monitor Bot tests."""

from typing import Dict, List, Optional

import pytest

from ielts_bot.config import Settings
from ielts_bot.db.backends import StateBackend
from ielts_bot.db.state_store import StateStore
from ielts_bot.models import DeliveryOutcome, DeliveryResult, PersistedState
from ielts_bot.notify.formatters import MessageFormatter
from ielts_bot.notify.notifier import Notifier
from ielts_bot.scrapers.fetcher import FetchError

TARGET_URL = "http://prep.bilkent.edu.tr/ielts/"

EXAM_LINE = (
    "-- 12 Ocak 2025, Pazar - Sınav Ücreti: 9000 TL "
    "Son Başvuru ve Belge YüklemeTarihi: 20 Aralık 2024, Cuma"
)


def make_page(first_column: str, row_class: str = "row-2 even") -> str:
    """IELTS page HTML with the exam row carrying the given first-column HTML."""
    return f"""
    <html><head><meta charset="utf-8"><title>IELTS</title></head>
    <body>
      <table id="tablepress-1" class="tablepress">
        <thead><tr class="row-1 odd"><th class="column-1">Sınav Tarihleri</th></tr></thead>
        <tbody>
          <tr class="{row_class}">
            <td class="column-1">{first_column}</td>
            <td class="column-2">Bilkent Üniversitesi</td>
          </tr>
        </tbody>
      </table>
    </body></html>
    """


class MemoryBackend(StateBackend):
    """Durable-looking backend that keeps the serialized record in memory."""

    def __init__(self, record: Optional[dict] = None, fail_saves: bool = False):
        self.record = record
        self.fail_saves = fail_saves
        self.saves = 0

    def load(self) -> Optional[PersistedState]:
        if self.record is None:
            return None
        return PersistedState.from_record(self.record)

    def save(self, state: PersistedState) -> None:
        if self.fail_saves:
            raise OSError("disk full")
        self.saves += 1
        self.record = state.to_record()


class FakeTransport:
    """Stands in for TelegramClient; outcomes are configured per chat."""

    def __init__(self, outcomes: Optional[Dict[int, DeliveryOutcome]] = None):
        self.outcomes = outcomes or {}
        self.sent: List[tuple] = []
        self.updates: List[List[dict]] = []

    def send_message(self, chat_id: int, message: str, parse_mode: str = "Markdown") -> DeliveryResult:
        self.sent.append((chat_id, message))
        outcome = self.outcomes.get(chat_id, DeliveryOutcome.DELIVERED)
        if outcome is DeliveryOutcome.DELIVERED:
            return DeliveryResult(chat_id=chat_id, outcome=outcome)
        return DeliveryResult(chat_id=chat_id, outcome=outcome, error="simulated")

    def get_updates(self, offset=None, timeout=30):
        return self.updates.pop(0) if self.updates else []

    def recipients(self) -> List[int]:
        return [chat_id for chat_id, _ in self.sent]


class FakeFetcher:
    """Returns queued pages; an Exception in the queue is raised instead."""

    def __init__(self, *pages):
        self.pages = list(pages)
        self.calls = 0

    def fetch(self) -> str:
        self.calls += 1
        page = self.pages.pop(0) if len(self.pages) > 1 else self.pages[0]
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        bot_token="123456:TEST",
        target_url=TARGET_URL,
        check_interval=5,
        state_backend="memory",
        send_startup_message=False,
    )


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend) -> StateStore:
    return StateStore(backend)


@pytest.fixture
def formatter() -> MessageFormatter:
    return MessageFormatter(target_url=TARGET_URL, check_interval=5)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def notifier(transport, store, formatter) -> Notifier:
    return Notifier(transport, store, formatter)


@pytest.fixture
def exam_page() -> str:
    return make_page(f"IELTS Sınav Takvimi<br/>{EXAM_LINE}<br/>Başvurular online yapılır.")


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("Timed out after 10s fetching " + TARGET_URL)
