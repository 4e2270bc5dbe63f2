"""OpenAI client configuration for the inventory assistant."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

load_dotenv()

logger = logging.getLogger(__name__)

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
COMPLETION_MODEL = os.getenv("OPENAI_MODEL", "gpt-4")
COMPLETION_MAX_TOKENS = 1000
COMPLETION_TEMPERATURE = 0.7


def create_completion_client(api_key: Optional[str] = None) -> Optional[AsyncOpenAI]:
    """Build the async OpenAI client owned by the application lifespan.

    Returns None when no key is configured so the service can still boot;
    the streaming endpoint then answers with a 500.
    """
    resolved_key = api_key or OPENAI_API_KEY
    if not resolved_key:
        logger.warning("OPENAI_API_KEY is not set; AI inventory endpoints are disabled.")
        return None
    return AsyncOpenAI(api_key=resolved_key)


__all__ = [
    "COMPLETION_MODEL",
    "COMPLETION_MAX_TOKENS",
    "COMPLETION_TEMPERATURE",
    "create_completion_client",
]
