"""Tests for subscriber fan-out."""

import threading

from ielts_bot.models import (
    DeliveryOutcome,
    DeliveryResult,
    MessageKind,
    PersistedState,
    ScrapedSnapshot,
)
from ielts_bot.notify.notifier import Notifier

from conftest import FakeTransport


def test_failures_do_not_short_circuit_and_blocked_chat_is_removed(store, formatter):
    transport = FakeTransport({
        2: DeliveryOutcome.TRANSIENT_FAILURE,
        3: DeliveryOutcome.PERMANENT_FAILURE,
    })
    for chat_id in (1, 2, 3):
        store.add_subscriber(chat_id)
    notifier = Notifier(transport, store, formatter)

    results = notifier.notify(store.list_subscribers(), "hello")

    assert set(results) == {1, 2, 3}
    assert results[1].outcome is DeliveryOutcome.DELIVERED
    assert results[2].outcome is DeliveryOutcome.TRANSIENT_FAILURE
    assert results[3].outcome is DeliveryOutcome.PERMANENT_FAILURE
    assert sorted(transport.recipients()) == [1, 2, 3]
    assert store.list_subscribers() == [1, 2]


def test_transport_exception_is_contained(store, formatter):
    class ExplodingTransport(FakeTransport):
        def send_message(self, chat_id, message, parse_mode="Markdown"):
            if chat_id == 1:
                raise RuntimeError("boom")
            return super().send_message(chat_id, message, parse_mode)

    transport = ExplodingTransport()
    notifier = Notifier(transport, store, formatter)

    results = notifier.notify([1, 2], "hello")

    assert results[1].outcome is DeliveryOutcome.TRANSIENT_FAILURE
    assert results[2].delivered
    assert transport.recipients() == [2]


def test_sends_are_concurrent(store, formatter):
    barrier = threading.Barrier(3, timeout=5)

    class BarrierTransport:
        def send_message(self, chat_id, message, parse_mode="Markdown"):
            barrier.wait()
            return DeliveryResult(chat_id=chat_id, outcome=DeliveryOutcome.DELIVERED)

    notifier = Notifier(BarrierTransport(), store, formatter)

    results = notifier.notify([1, 2, 3], "hello")

    assert all(r.delivered for r in results.values())


def test_no_retry_within_cycle(store, formatter):
    transport = FakeTransport({5: DeliveryOutcome.TRANSIENT_FAILURE})
    notifier = Notifier(transport, store, formatter)

    notifier.notify([5], "hello", MessageKind.ERROR)

    assert transport.recipients() == [5]


def test_no_recipients(notifier, transport):
    assert notifier.notify([], "hello") == {}
    assert transport.sent == []


def test_message_kinds_go_to_current_subscribers(store, notifier, transport):
    store.add_subscriber(10)
    store.add_subscriber(20)
    previous = PersistedState(
        last_exam_date="12 Ocak 2025, Pazar",
        last_application_deadline="20 Aralık 2024, Cuma",
        is_initialized=True,
    )
    current = ScrapedSnapshot(
        exam_date="9 Şubat 2025, Pazar",
        application_deadline="17 Ocak 2025, Cuma",
    )

    notifier.send_date_change(previous, current)
    notifier.send_error("Web sitesinden veri çekilemedi.")
    notifier.send_test()

    assert sorted(transport.recipients()) == [10, 10, 10, 20, 20, 20]
    messages = [message for _, message in transport.sent]
    assert any("9 Şubat 2025, Pazar" in m and "12 Ocak 2025, Pazar" in m for m in messages)
    assert any("Web sitesinden veri çekilemedi." in m for m in messages)
    assert any("Test Mesajı" in m for m in messages)
