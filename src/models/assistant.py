"""
Assistant Models

Request and reply shapes for the chat assistant. Field names are
snake_case in Python and camelCase on the wire (systemData,
conversationHistory, tokensUsed, ...).
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from src.models.collection import ErrorKind


class ReplyType(str, Enum):
    """How the assistant's reply reads."""
    TEXT = "text"
    SUGGESTION = "suggestion"
    INSIGHT = "insight"


class ConversationTurn(BaseModel):
    """One earlier message of the conversation. Accepts `content` for `text`."""

    role: Literal["user", "assistant"]
    text: str = Field(
        ...,
        validation_alias=AliasChoices("text", "content"),
    )


def _is_valid_turn(item: Any) -> bool:
    try:
        ConversationTurn.model_validate(item)
    except ValidationError:
        return False
    return True


class SystemDataSnapshot(BaseModel):
    """Headline figures of the user's finances, passed to the assistant as context."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    total_income: float = 0.0
    total_expense: float = 0.0
    balance: float = 0.0
    pending_transactions: int = 0
    accounts_count: int = 0


class AssistantRequest(BaseModel):
    """
    Body of POST /assistant.

    `message` is optional here so a missing message is answered with
    "Message is required" rather than as a schema error.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    message: Optional[str] = None
    system_data: Optional[SystemDataSnapshot] = None
    conversation_history: list[ConversationTurn] = Field(default_factory=list)

    @field_validator("conversation_history", mode="before")
    @classmethod
    def keep_valid_turns(cls, v: Any) -> Any:
        """Turns with an unknown role or without text are dropped, not rejected."""
        if not isinstance(v, list):
            return []
        return [item for item in v if _is_valid_turn(item)]


class AssistantReply(BaseModel):
    """A complete assistant reply."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    response: str
    type: ReplyType = ReplyType.TEXT
    tokens_used: int = 0
    credits_used: int = 0


class AssistantResult(BaseModel):
    """Either a reply or a tagged error, never both."""

    reply: Optional[AssistantReply] = None
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reply is not None and self.error is None

    @property
    def http_status(self) -> int:
        if self.error is not None:
            return self.error.http_status
        return 200
