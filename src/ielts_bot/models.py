"""
Data models for the IELTS Monitor Bot.

Defines Pydantic models for:
- ScrapedSnapshot (one extraction result)
- PersistedState (the bot's durable state)
- DeliveryResult (outcome of one message send)
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MessageKind(str, Enum):
    """Kinds of broadcast messages the bot sends to subscribers."""
    DATE_CHANGE = "date_change"
    ERROR = "error"
    TEST = "test"


class DeliveryOutcome(str, Enum):
    """Classified result of sending one message to one chat."""
    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


class ScrapedSnapshot(BaseModel):
    """
    Exam date information extracted from the monitored page.

    Attributes:
        exam_date: Exam date as written on the page (e.g. "12 Ocak 2025, Pazar")
        application_deadline: Application and document upload deadline
        raw_text: The text the dates were extracted from
    """
    model_config = ConfigDict(frozen=True)

    exam_date: str
    application_deadline: str
    raw_text: str = ""


class PersistedState(BaseModel):
    """
    Durable state of the bot.

    Serialized with the camelCase field names used by the state file,
    e.g. ``lastExamDate`` and ``subscribedChatIds``.
    """
    model_config = ConfigDict(populate_by_name=True)

    last_exam_date: Optional[str] = Field(default=None, alias="lastExamDate")
    last_application_deadline: Optional[str] = Field(
        default=None, alias="lastApplicationDeadline"
    )
    last_notification_sent: Optional[datetime] = Field(
        default=None, alias="lastNotificationSent"
    )
    is_initialized: bool = Field(default=False, alias="isInitialized")
    subscribed_chat_ids: List[int] = Field(
        default_factory=list, alias="subscribedChatIds"
    )

    @field_validator("subscribed_chat_ids", mode="before")
    @classmethod
    def default_subscribers(cls, v):
        """Older state files have no subscriber list or store it as null."""
        return [] if v is None else v

    @field_validator("subscribed_chat_ids")
    @classmethod
    def unique_subscribers(cls, v: List[int]) -> List[int]:
        """Drop duplicate chat IDs, keeping the first occurrence."""
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def dates_set_together(self) -> "PersistedState":
        if (self.last_exam_date is None) != (self.last_application_deadline is None):
            raise ValueError(
                "lastExamDate and lastApplicationDeadline must both be set or both be null"
            )
        return self

    def to_record(self) -> dict:
        """JSON-ready dict using the persisted field names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict) -> "PersistedState":
        return cls.model_validate(record)


class DeliveryResult(BaseModel):
    """Outcome of one send attempt."""
    chat_id: int
    outcome: DeliveryOutcome
    error: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome is DeliveryOutcome.DELIVERED
