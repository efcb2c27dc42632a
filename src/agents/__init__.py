"""AI Agents package."""

from src.agents.assistant_gateway import (
    MESSAGE_REQUIRED,
    SYSTEM_PROMPT,
    AssistantGateway,
    build_system_prompt,
    classify_reply,
    compute_credits,
    to_gemini_history,
)

__all__ = [
    "MESSAGE_REQUIRED",
    "SYSTEM_PROMPT",
    "AssistantGateway",
    "build_system_prompt",
    "classify_reply",
    "compute_credits",
    "to_gemini_history",
]
