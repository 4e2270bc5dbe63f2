"""Relay of streamed OpenAI completions to the HTTP caller."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, AsyncIterator, Optional

from openai import AsyncOpenAI, OpenAIError

from app.config.openai_client import COMPLETION_MAX_TOKENS, COMPLETION_MODEL, COMPLETION_TEMPERATURE
from app.services.errors import UpstreamError

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"


def _chunk_text(chunk: Any) -> str:
    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return ""
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None) or ""


class CompletionStreamRelay:
    """Forward completion chunks in arrival order, one request per instance.

    ``open`` submits the request so setup failures surface before the HTTP
    response starts. ``chunks`` then yields text as it arrives. A failure
    while streaming ends the response early; text already sent stays sent.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = COMPLETION_MODEL,
        max_tokens: int = COMPLETION_MAX_TOKENS,
        temperature: float = COMPLETION_TEMPERATURE,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.state = RelayState.IDLE
        self._stream: Optional[Any] = None

    async def open(self, system_prompt: str, user_prompt: str) -> None:
        if self.state is not RelayState.IDLE:
            raise RuntimeError(f"Relay already used (state={self.state.value}).")

        self.state = RelayState.REQUESTING
        try:
            self._stream = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
        except OpenAIError as exc:
            self.state = RelayState.ERRORED
            logger.error("OpenAI completion request failed: %s", exc)
            raise UpstreamError("Completion service request failed.") from exc

    async def chunks(self) -> AsyncIterator[str]:
        if self.state is not RelayState.REQUESTING or self._stream is None:
            raise RuntimeError(f"Relay is not ready to stream (state={self.state.value}).")

        stream = self._stream
        try:
            async for chunk in stream:
                if self.state is RelayState.REQUESTING:
                    self.state = RelayState.STREAMING
                text = _chunk_text(chunk)
                if text:
                    yield text
        except Exception as exc:
            self.state = RelayState.ERRORED
            logger.error("OpenAI stream interrupted: %s", exc)
            raise UpstreamError("Completion stream interrupted.") from exc
        finally:
            await stream.close()

        self.state = RelayState.COMPLETED


__all__ = ["CompletionStreamRelay", "RelayState"]
