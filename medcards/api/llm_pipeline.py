"""
LLM Provider Access
===================

Purpose
-------
Thin wrapper around the OpenAI-compatible chat completion API (OpenRouter by
default) used by the `/api/ai/*` routes. The provider key is held by the
server; clients never see it.

Key Functions
-------------
- get_llm_client   : Build an `openai.OpenAI` client from settings.
- chat_completion  : One chat completion call, returning the answer text.
- make_completer   : Adapter giving `GenerationSession` a `complete(messages)` callable.
- draft_card       : Create or edit one card from a prompt and the drafting history.

Errors
------
- ProviderNotConfiguredError : `LLM_API_KEY` is unset.
- ProviderError              : the upstream call failed; message passed through.
"""

import logging
from typing import Callable, List, Optional

from openai import OpenAI, OpenAIError

from medcards.database.config.config import settings
from medcards.generation.drafting import draft_messages, is_editing, parse_draft_response

logger = logging.getLogger(__name__)

GENERATION_MAX_TOKENS = 16000
GENERATION_TEMPERATURE = 0.7
DRAFT_MAX_TOKENS = 4000


class ProviderNotConfiguredError(RuntimeError):
    def __init__(self, message: str = "AI provider API key is not configured"):
        super().__init__(message)


class ProviderError(RuntimeError):
    """The upstream provider call failed."""


def get_llm_client() -> OpenAI:
    """
    Build the provider client.

    Raises
    ------
    ProviderNotConfiguredError
        If no API key is configured.
    """
    if not settings.LLM_API_KEY:
        raise ProviderNotConfiguredError()
    return OpenAI(
        api_key=settings.LLM_API_KEY,
        base_url=settings.LLM_BASE_URL,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


def chat_completion(
    messages: List[dict],
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> str:
    """
    Send `messages` to the provider and return the first choice's text.

    Raises
    ------
    ProviderNotConfiguredError
        If no API key is configured.
    ProviderError
        On any SDK/transport error, or an answer without choices.
    """
    client = get_llm_client()
    try:
        response = client.chat.completions.create(
            model=model or settings.LLM_MODEL,
            messages=messages,
            temperature=0.7 if temperature is None else temperature,
            max_tokens=max_tokens or 4000,
        )
    except OpenAIError as e:
        logger.exception("AI provider call failed")
        raise ProviderError(str(e)) from e

    if not response.choices:
        raise ProviderError("AI provider returned no choices")
    return response.choices[0].message.content or ""


def make_completer(model: Optional[str] = None) -> Callable[[List[dict]], str]:
    def complete(messages: List[dict]) -> str:
        return chat_completion(
            messages,
            model=model,
            temperature=GENERATION_TEMPERATURE,
            max_tokens=GENERATION_MAX_TOKENS,
        )

    return complete


def draft_card(
    prompt: str,
    history: Optional[List[dict]] = None,
    current_content: Optional[str] = None,
    model: Optional[str] = None,
) -> dict:
    """
    Draft one card, or revise `current_content` when it is given.

    Returns
    -------
    dict
        ``{"title", "content", "sources"}`` parsed from the model's HTML.

    Raises
    ------
    ProviderNotConfiguredError, ProviderError
        As for `chat_completion`.
    """
    messages = draft_messages(prompt, history, current_content)
    logger.info("Drafting card (%s mode, %d history turns)",
                "edit" if is_editing(current_content) else "create", len(history or []))
    raw = chat_completion(messages, model=model, temperature=GENERATION_TEMPERATURE, max_tokens=DRAFT_MAX_TOKENS)
    return parse_draft_response(raw)
