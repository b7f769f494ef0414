"""
Storage backends for the bot state.

Three places can hold the state record:
- a JSON file on local disk (default)
- a single row in a Supabase table
- an environment variable, for serverless runs without durable storage
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from supabase import Client

from ielts_bot.config import Settings
from ielts_bot.db.client import get_supabase_client
from ielts_bot.models import PersistedState

logger = logging.getLogger(__name__)


class StateBackendError(Exception):
    """Raised when a state backend cannot be set up."""
    pass


class StateBackend(ABC):
    """Loads and saves the PersistedState record."""

    #: Whether saved state survives a process restart.
    durable: bool = True

    @abstractmethod
    def load(self) -> Optional[PersistedState]:
        """Return the stored state, or None if there is none."""

    @abstractmethod
    def save(self, state: PersistedState) -> None:
        """Persist the state. May raise on I/O errors."""


class JsonFileBackend(StateBackend):
    """Keeps the state in a pretty-printed JSON file."""

    def __init__(self, path):
        self.path = Path(path).resolve()

    def load(self) -> Optional[PersistedState]:
        if not self.path.exists():
            logger.info(f"No state file at {self.path}, starting fresh")
            return None

        try:
            record = json.loads(self.path.read_text(encoding="utf-8"))
            state = PersistedState.from_record(record)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Error loading state file {self.path}: {e}")
            return None

        logger.info("Loaded existing state from file")
        return state

    def save(self, state: PersistedState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(state.to_record(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        os.replace(tmp_path, self.path)
        logger.debug("State saved to file")


class SupabaseBackend(StateBackend):
    """
    Keeps the state as one row of a Supabase table.

    The row holds the serialized record in a JSON column so the layout
    matches the state file.
    """

    def __init__(self, client: Client, table: str = "bot_state", row_id: int = 1):
        self.client = client
        self.table_name = table
        self.row_id = row_id

    @property
    def table(self):
        return self.client.table(self.table_name)

    def load(self) -> Optional[PersistedState]:
        try:
            result = (
                self.table
                .select("state")
                .eq("id", self.row_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error loading state from Supabase: {e}")
            return None

        if not result.data:
            logger.info("No state row in Supabase, starting fresh")
            return None

        try:
            state = PersistedState.from_record(result.data[0]["state"] or {})
        except (KeyError, TypeError, ValidationError) as e:
            logger.error(f"Invalid state row in Supabase: {e}")
            return None

        logger.info("Loaded existing state from Supabase")
        return state

    def save(self, state: PersistedState) -> None:
        self.table.upsert(
            {"id": self.row_id, "state": state.to_record()},
            on_conflict="id",
        ).execute()
        logger.debug("State saved to Supabase")


class EnvironmentBackend(StateBackend):
    """
    Ephemeral state for serverless deployments.

    Reads an initial state from an environment variable if it is set.
    Saves only log the state, so a cold start without the variable
    always begins uninitialized.
    """

    durable = False

    def __init__(self, variable: str = "BOT_STATE"):
        self.variable = variable

    def load(self) -> Optional[PersistedState]:
        raw = os.environ.get(self.variable)
        if not raw:
            logger.info("Using default state (no persistent storage)")
            return None

        try:
            state = PersistedState.from_record(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Error loading state from environment: {e}")
            return None

        logger.info("Loaded state from environment variables")
        return state

    def save(self, state: PersistedState) -> None:
        logger.info("State updated (serverless mode - not persisted)")
        logger.debug(f"Current state: {json.dumps(state.to_record(), ensure_ascii=False)}")


# SQL for creating the Supabase table (run this in Supabase SQL Editor)
CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS bot_state (
    id BIGINT PRIMARY KEY,
    state JSONB NOT NULL DEFAULT '{}'::jsonb,
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

ALTER TABLE bot_state ENABLE ROW LEVEL SECURITY;

CREATE POLICY "Service role has full access" ON bot_state
    FOR ALL
    USING (true)
    WITH CHECK (true);
"""


def build_backend(settings: Settings) -> StateBackend:
    """
    Create the backend selected by STATE_BACKEND.

    Raises:
        StateBackendError: If the Supabase client cannot be created
    """
    if settings.state_backend == "supabase":
        try:
            client = get_supabase_client(
                settings.supabase_url or "", settings.supabase_service_role_key or ""
            )
        except Exception as e:
            raise StateBackendError(f"Could not connect to Supabase: {e}") from e
        return SupabaseBackend(client)

    if settings.state_backend == "memory":
        return EnvironmentBackend()

    return JsonFileBackend(settings.state_file)
