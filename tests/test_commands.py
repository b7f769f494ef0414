"""Tests for chat command dispatch."""

import pytest

from ielts_bot.commands import COMMANDS, CommandContext, dispatch, parse_command


@pytest.fixture
def ctx(store, formatter) -> CommandContext:
    return CommandContext(store=store, formatter=formatter)


class TestParseCommand:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("/start", "start"),
            ("/status@IeltsDateBot", "status"),
            ("/HELP please", "help"),
            ("hello", None),
            ("", None),
            (None, None),
            ("/", None),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_command(text) == expected


def test_table_covers_all_commands():
    assert set(COMMANDS) == {"start", "status", "subscribe", "unsubscribe", "help"}


def test_start_subscribes_once(ctx, store):
    first = dispatch(ctx, 100, "/start")
    second = dispatch(ctx, 100, "/start")

    assert store.list_subscribers() == [100]
    assert "Başarıyla kayıt oldunuz" in first
    assert "Zaten kayıtlısınız" in second
    assert "Toplam abone sayısı: 1" in second


def test_subscribe_and_unsubscribe(ctx, store):
    assert "Bildirimler aktif edildi" in dispatch(ctx, 7, "/subscribe")
    assert "Zaten abonesiniz" in dispatch(ctx, 7, "/subscribe")
    assert "Bildirimler durduruldu" in dispatch(ctx, 7, "/unsubscribe")
    assert "Zaten abone değilsiniz" in dispatch(ctx, 7, "/unsubscribe")
    assert store.subscriber_count() == 0


def test_status_reports_subscription_and_target(ctx, store):
    store.add_subscriber(1)
    store.update("12 Ocak 2025, Pazar", "20 Aralık 2024, Cuma")

    subscribed = dispatch(ctx, 1, "/status")
    other = dispatch(ctx, 2, "/status")

    assert "Siz abonesiniz" in subscribed
    assert "Siz abone değilsiniz" in other
    assert "http://prep.bilkent.edu.tr/ielts/" in subscribed
    assert "5 dakika" in subscribed
    assert "12 Ocak 2025, Pazar" in subscribed
    assert "Toplam abone sayısı: 1" in subscribed


def test_status_when_stopped(store, formatter):
    ctx = CommandContext(store=store, formatter=formatter, is_running=lambda: False)

    assert "durdurulmuş" in dispatch(ctx, 1, "/status")


def test_help_does_not_touch_state(ctx, store, backend):
    reply = dispatch(ctx, 1, "/help")

    assert "/unsubscribe" in reply
    assert backend.saves == 0
    assert store.subscriber_count() == 0


def test_unknown_command_and_plain_text_get_no_reply(ctx):
    assert dispatch(ctx, 1, "/weather") is None
    assert dispatch(ctx, 1, "merhaba") is None
