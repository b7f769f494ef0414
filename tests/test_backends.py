"""Tests for the state backends and the persisted record layout."""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from ielts_bot.config import Settings
from ielts_bot.db.backends import (
    EnvironmentBackend,
    JsonFileBackend,
    StateBackendError,
    SupabaseBackend,
    build_backend,
)
from ielts_bot.db.client import MissingCredentialsError, get_supabase_client
from ielts_bot.models import PersistedState


@pytest.fixture
def full_state() -> PersistedState:
    return PersistedState(
        last_exam_date="12 Ocak 2025, Pazar",
        last_application_deadline="20 Aralık 2024, Cuma",
        last_notification_sent=datetime(2024, 12, 1, 9, 30, tzinfo=timezone.utc),
        is_initialized=True,
        subscribed_chat_ids=[111, -1002222],
    )


class TestPersistedState:
    def test_record_uses_camel_case_layout(self, full_state):
        record = full_state.to_record()

        assert record == {
            "lastExamDate": "12 Ocak 2025, Pazar",
            "lastApplicationDeadline": "20 Aralık 2024, Cuma",
            "lastNotificationSent": record["lastNotificationSent"],
            "isInitialized": True,
            "subscribedChatIds": [111, -1002222],
        }
        assert record["lastNotificationSent"].startswith("2024-12-01T09:30:00")

    def test_missing_subscriber_list_loads_empty(self):
        state = PersistedState.from_record({
            "lastExamDate": None,
            "lastApplicationDeadline": None,
            "lastNotificationSent": None,
            "isInitialized": False,
        })

        assert state.subscribed_chat_ids == []

    def test_duplicate_chat_ids_are_dropped(self):
        state = PersistedState.from_record({"subscribedChatIds": [1, 2, 1]})

        assert state.subscribed_chat_ids == [1, 2]

    def test_dates_must_be_set_together(self):
        with pytest.raises(ValidationError):
            PersistedState.from_record({"lastExamDate": "12 Ocak 2025, Pazar"})


class TestJsonFileBackend:
    def test_round_trip(self, tmp_path, full_state):
        backend = JsonFileBackend(tmp_path / "bot-state.json")

        backend.save(full_state)

        assert backend.load() == full_state

    def test_round_trip_with_nulls(self, tmp_path):
        backend = JsonFileBackend(tmp_path / "bot-state.json")
        empty = PersistedState()

        backend.save(empty)
        loaded = backend.load()

        assert loaded == empty
        assert loaded.last_exam_date is None
        assert loaded.last_notification_sent is None
        raw = json.loads((tmp_path / "bot-state.json").read_text(encoding="utf-8"))
        assert raw["lastNotificationSent"] is None

    def test_missing_file_loads_none(self, tmp_path):
        assert JsonFileBackend(tmp_path / "absent.json").load() is None

    def test_corrupt_file_loads_none(self, tmp_path):
        path = tmp_path / "bot-state.json"
        path.write_text("{not json", encoding="utf-8")

        assert JsonFileBackend(path).load() is None

    def test_creates_parent_directories(self, tmp_path, full_state):
        path = tmp_path / "data" / "state" / "bot-state.json"

        JsonFileBackend(path).save(full_state)

        assert path.exists()
        assert not path.with_name("bot-state.json.tmp").exists()


class TestSupabaseBackend:
    def test_save_upserts_single_row(self, full_state):
        client = MagicMock()

        SupabaseBackend(client).save(full_state)

        client.table.assert_called_with("bot_state")
        client.table.return_value.upsert.assert_called_once_with(
            {"id": 1, "state": full_state.to_record()},
            on_conflict="id",
        )

    def test_load_reads_state_column(self, full_state):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.execute.return_value = MagicMock(data=[{"state": full_state.to_record()}])

        assert SupabaseBackend(client).load() == full_state

    def test_load_without_row_returns_none(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.execute.return_value = MagicMock(data=[])

        assert SupabaseBackend(client).load() is None

    def test_load_failure_returns_none(self):
        client = MagicMock()
        client.table.return_value.select.side_effect = RuntimeError("network down")

        assert SupabaseBackend(client).load() is None


class TestEnvironmentBackend:
    def test_is_not_durable(self):
        assert EnvironmentBackend.durable is False

    def test_loads_from_environment(self, monkeypatch, full_state):
        monkeypatch.setenv("BOT_STATE", json.dumps(full_state.to_record()))

        assert EnvironmentBackend().load() == full_state

    def test_without_variable_starts_uninitialized(self, monkeypatch):
        monkeypatch.delenv("BOT_STATE", raising=False)

        assert EnvironmentBackend().load() is None

    def test_save_does_not_persist(self, monkeypatch, full_state):
        monkeypatch.delenv("BOT_STATE", raising=False)
        backend = EnvironmentBackend()

        backend.save(full_state)

        assert backend.load() is None


class TestBuildBackend:
    def test_selects_file_backend_by_default(self, tmp_path):
        settings = Settings(_env_file=None, bot_token="t", state_file=str(tmp_path / "s.json"))

        backend = build_backend(settings)

        assert isinstance(backend, JsonFileBackend)
        assert backend.path == (tmp_path / "s.json").resolve()

    def test_selects_memory_backend(self):
        settings = Settings(_env_file=None, bot_token="t", state_backend="memory")

        assert isinstance(build_backend(settings), EnvironmentBackend)

    def test_selects_supabase_backend_with_credentials(self, monkeypatch):
        from ielts_bot.db import backends

        connect = MagicMock(return_value=MagicMock())
        monkeypatch.setattr(backends, "get_supabase_client", connect)
        settings = Settings(
            _env_file=None,
            bot_token="t",
            state_backend="supabase",
            supabase_url="https://example.supabase.co",
            supabase_service_role_key="key",
        )

        backend = build_backend(settings)

        assert isinstance(backend, SupabaseBackend)
        connect.assert_called_once_with("https://example.supabase.co", "key")

    def test_supabase_connection_failure_is_reported(self, monkeypatch):
        from ielts_bot.db import backends

        monkeypatch.setattr(
            backends, "get_supabase_client", MagicMock(side_effect=RuntimeError("bad url"))
        )
        settings = Settings(
            _env_file=None,
            bot_token="t",
            state_backend="supabase",
            supabase_url="https://example.supabase.co",
            supabase_service_role_key="key",
        )

        with pytest.raises(StateBackendError, match="bad url"):
            build_backend(settings)


def test_supabase_client_requires_credentials():
    with pytest.raises(MissingCredentialsError):
        get_supabase_client("", "key")
