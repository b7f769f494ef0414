"""State persistence for the IELTS Monitor Bot."""

from ielts_bot.db.backends import (
    EnvironmentBackend,
    JsonFileBackend,
    StateBackend,
    StateBackendError,
    SupabaseBackend,
    build_backend,
)
from ielts_bot.db.state_store import StateStore

__all__ = [
    "EnvironmentBackend",
    "JsonFileBackend",
    "StateBackend",
    "StateBackendError",
    "StateStore",
    "SupabaseBackend",
    "build_backend",
]
