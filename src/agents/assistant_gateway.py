"""
Assistant Gateway

Relays one chat message, the user's headline financial figures and the
conversation so far to Gemini, and hands back the reply.

CRITICAL BOUNDARIES:
- An empty message is rejected before anything is sent upstream
- One attempt per message: no retries, no batching
- An upstream failure is reported as UPSTREAM_FAILURE with the upstream
  message verbatim; a partial or empty reply is never returned as success
"""

import math
from typing import Any, Callable, Iterable, Optional, Union
from uuid import UUID

import google.generativeai as genai
from pydantic import ValidationError

from src.audit import AuditLogger
from src.config import get_settings
from src.config.settings import AppSettings, GeminiSettings
from src.models.assistant import (
    AssistantReply,
    AssistantResult,
    ConversationTurn,
    ReplyType,
    SystemDataSnapshot,
)
from src.models.collection import ErrorKind


SYSTEM_PROMPT = """You are an AI assistant specialized in financial management and business consulting.
Your goal is to help users of this finance and CRM system with:

1. **Support and Help**: Answer questions about how to use the system, explain features and guide users.
2. **Financial Analysis**: Analyze the financial data provided and identify patterns, trends and opportunities.
3. **Strategies**: Suggest strategies to improve financial management, reduce costs and increase revenue.
4. **Decision Making**: Provide data-based recommendations for important decisions.

You should:
- Be friendly, professional and empathetic
- Give clear and concise answers
- Use concrete data when available
- Ask follow-up questions to better understand the user's needs
- Suggest practical, actionable steps
- Warn about financial risks when you identify them
- Acknowledge your limitations and suggest consulting a professional when needed"""

MESSAGE_REQUIRED = "Message is required"

HistoryItem = Union[ConversationTurn, dict, tuple]


def build_system_prompt(snapshot: Optional[SystemDataSnapshot]) -> str:
    """Persona prompt, followed by the user's current figures when given."""
    if snapshot is None:
        return SYSTEM_PROMPT
    return (
        f"{SYSTEM_PROMPT}\n\n"
        "User's current financial data:\n"
        f"- Total income: {snapshot.total_income:.2f}\n"
        f"- Total expenses: {snapshot.total_expense:.2f}\n"
        f"- Current balance: {snapshot.balance:.2f}\n"
        f"- Pending transactions: {snapshot.pending_transactions}\n"
        f"- Bank accounts: {snapshot.accounts_count}"
    )


def classify_reply(text: str) -> ReplyType:
    """Tag a reply by its wording."""
    lowered = text.lower()
    if "suggest" in lowered or "recommend" in lowered:
        return ReplyType.SUGGESTION
    if "insight" in lowered or "analysis" in lowered:
        return ReplyType.INSIGHT
    return ReplyType.TEXT


def compute_credits(tokens_used: int, base_cost: int, cost_per_1k_tokens: int) -> int:
    """Credits charged for a reply: the per-token price, never below the base cost."""
    return max(base_cost, math.ceil(tokens_used / 1000 * cost_per_1k_tokens))


def _to_turn(item: HistoryItem) -> Optional[ConversationTurn]:
    """None when the item is not a user or assistant turn with text."""
    if isinstance(item, ConversationTurn):
        return item
    try:
        if isinstance(item, tuple):
            role, text = item
            return ConversationTurn(role=role, text=text)
        return ConversationTurn.model_validate(item)
    except (ValidationError, ValueError):
        return None


def to_gemini_history(turns: Iterable[ConversationTurn]) -> list[dict[str, Any]]:
    """Gemini calls the assistant side of the conversation `model`."""
    return [
        {
            "role": "model" if turn.role == "assistant" else "user",
            "parts": [turn.text],
        }
        for turn in turns
    ]


class AssistantGateway:
    """
    Stateless relay between the back office and Gemini.

    The Gemini model is built per message because the system prompt
    carries that request's figures. Tests inject `model_factory`.
    """

    def __init__(
        self,
        model_factory: Optional[Callable[[str], Any]] = None,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._app_settings = app_settings or get_settings().app
        self._audit_logger = audit_logger
        if model_factory is None:
            self._settings = settings or get_settings().gemini
            self._configure_genai()
            self._model_factory = self._build_model
        else:
            self._settings = settings
            self._model_factory = model_factory

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _build_model(self, system_prompt: str) -> genai.GenerativeModel:
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=system_prompt,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "top_p": self._settings.top_p,
            },
        )

    async def relay(
        self,
        message: Optional[str],
        context: Union[SystemDataSnapshot, dict, None] = None,
        history: Optional[Iterable[HistoryItem]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantResult:
        """
        Send `message` with its context and history; return the reply or a tagged error.
        """
        if message is None or not message.strip():
            return await self._reject(MESSAGE_REQUIRED, correlation_id)

        try:
            snapshot = (
                context
                if context is None or isinstance(context, SystemDataSnapshot)
                else SystemDataSnapshot.model_validate(context)
            )
        except (ValidationError, ValueError, TypeError) as e:
            return await self._reject(f"Invalid request: {e}", correlation_id)

        turns = [turn for turn in map(_to_turn, history or []) if turn is not None]

        try:
            model = self._model_factory(build_system_prompt(snapshot))
            chat = model.start_chat(history=to_gemini_history(turns))
            response = await chat.send_message_async(message)
            # .text raises when the candidate was blocked or has no parts
            text = (response.text or "").strip()
        except Exception as e:
            return await self._fail(str(e), correlation_id)

        if not text:
            return await self._fail("The model returned an empty reply", correlation_id)

        usage = getattr(response, "usage_metadata", None)
        tokens_used = int(getattr(usage, "total_token_count", 0) or 0)
        reply = AssistantReply(
            response=text,
            type=classify_reply(text),
            tokens_used=tokens_used,
            credits_used=compute_credits(
                tokens_used,
                self._app_settings.chat_base_credits,
                self._app_settings.credits_per_1k_tokens,
            ),
        )

        if self._audit_logger:
            await self._audit_logger.log_assistant_replied(
                reply_type=reply.type.value,
                tokens_used=reply.tokens_used,
                credits_used=reply.credits_used,
                correlation_id=correlation_id,
            )
        return AssistantResult(reply=reply)

    async def _reject(self, reason: str, correlation_id: Optional[UUID]) -> AssistantResult:
        if self._audit_logger:
            await self._audit_logger.log_assistant_request_rejected(
                reason=reason,
                correlation_id=correlation_id,
            )
        return AssistantResult(error=ErrorKind.INVALID_INPUT, error_message=reason)

    async def _fail(self, error_message: str, correlation_id: Optional[UUID]) -> AssistantResult:
        if self._audit_logger:
            await self._audit_logger.log_assistant_failed(
                error_message=error_message,
                correlation_id=correlation_id,
            )
        return AssistantResult(error=ErrorKind.UPSTREAM_FAILURE, error_message=error_message)
