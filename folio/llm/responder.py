"""
AI responder - drafts the email reply to a visitor request.

The model is asked for ``{"subject", "body", "attachResume"}`` JSON. Rate
limits (429 / ResourceExhausted) are retried here with exponential backoff,
independently of the task queue's own retries. Without credentials, and
whenever the caller chooses to fall back, the fixed default reply is used.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from folio.config import (
    DEFAULT_PROFILE,
    LLM_BACKOFF_BASE_SECONDS,
    LLM_BACKOFF_MAX_SECONDS,
    LLM_MAX_ATTEMPTS,
    LLM_TEMPERATURE,
    LLM_TOP_P,
)
from folio.infrastructure.settings import Settings
from folio.llm.gemini import get_gemini_model
from folio.llm.prompts import get_responder_prompt
from folio.observability.logging import get_logger
from folio.observability.telemetry import counter

logger = get_logger(__name__)


class DraftReply(BaseModel):
    """Email reply drafted for a visitor."""

    model_config = ConfigDict(populate_by_name=True)

    subject: str = "Re: Request"
    body: str = "<p>Received.</p>"
    attach_resume: bool = Field(default=False, alias="attachResume")


DEFAULT_REPLY = DraftReply()


class ResponderError(RuntimeError):
    """The model answered, but not with a usable reply."""


class RateLimitedError(OSError):
    """The model rejected the call with a rate limit (retryable)."""


class Responder(Protocol):
    async def generate(
        self,
        *,
        name: str,
        company: str | None,
        request_type: str,
        message: str,
        projects: list[dict[str, Any]],
    ) -> DraftReply: ...


def load_profile(settings: Settings) -> str:
    """Owner profile text, or the stock one-liner if the about file is unreadable."""
    try:
        text = settings.about_path.read_text(encoding="utf-8").strip()
    except OSError:
        return DEFAULT_PROFILE
    return text or DEFAULT_PROFILE


def parse_reply(text: str | None) -> DraftReply:
    """
    Parse the model's JSON answer.

    Tolerates a surrounding markdown code fence.

    Raises:
        ResponderError: If the text is empty or not a valid reply object
    """
    if not text or not text.strip():
        raise ResponderError("Empty response from AI")

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]

    try:
        return DraftReply.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ResponderError(f"Malformed AI response: {e}") from e


class GeminiResponder:
    """Drafts replies with Gemini."""

    def __init__(
        self,
        settings: Settings,
        model_factory: Callable[[Settings], Any] = get_gemini_model,
        wait: wait_base | None = None,
    ) -> None:
        self.settings = settings
        self.model_factory = model_factory
        self.wait = wait or wait_exponential(
            multiplier=LLM_BACKOFF_BASE_SECONDS,
            min=LLM_BACKOFF_BASE_SECONDS,
            max=LLM_BACKOFF_MAX_SECONDS,
        )

    async def generate(
        self,
        *,
        name: str,
        company: str | None,
        request_type: str,
        message: str,
        projects: list[dict[str, Any]],
    ) -> DraftReply:
        """
        Draft a reply.

        Returns:
            DraftReply (DEFAULT_REPLY when no model is configured)

        Raises:
            RateLimitedError: Still rate limited after the final attempt
            ResponderError: Unusable model output
            Exception: Any other model error, unchanged
        """
        if not self.settings.llm_configured:
            return DEFAULT_REPLY

        prompt = get_responder_prompt(
            owner_name=self.settings.owner_name,
            profile=load_profile(self.settings),
            projects=projects,
            name=name,
            company=company,
            request_type=request_type,
            message=message,
            received_at=datetime.now(UTC).isoformat(),
        )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(LLM_MAX_ATTEMPTS),
            wait=self.wait,
            retry=retry_if_exception_type(RateLimitedError),
            reraise=True,
        ):
            with attempt:
                text = await asyncio.to_thread(self._call, prompt)

        reply = parse_reply(text)
        counter("llm.replies")
        return reply

    def _call(self, prompt: str) -> str:
        from google.api_core.exceptions import ResourceExhausted

        model = self.model_factory(self.settings)
        generation_config = {
            "temperature": LLM_TEMPERATURE,
            "top_p": LLM_TOP_P,
            "response_mime_type": "application/json",
        }

        try:
            response = model.generate_content(prompt, generation_config=generation_config)
            return response.text
        except ResourceExhausted as e:
            counter("llm.rate_limited")
            logger.warning("LLM rate limited (429), will retry: %s", e)
            raise RateLimitedError(f"LLM rate limited: {e}") from e
        except Exception as e:
            if "429" in str(e):
                counter("llm.rate_limited")
                logger.warning("LLM rate limited (429), will retry: %s", e)
                raise RateLimitedError(f"LLM rate limited: {e}") from e
            logger.error("LLM call failed: %s", e)
            raise
