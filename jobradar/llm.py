"""Shared LLM client, retry logic, and JSON extraction."""

from __future__ import annotations

import json
import logging
import os
import random
import re
import time

from google import genai
from google.genai import types
from google.genai.errors import ClientError, ServerError

from .config import DEFAULT_GEMINI_MODEL

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
BASE_DELAY = 2  # seconds


def create_client(api_key: str | None = None, timeout_s: float | None = None) -> genai.Client:
    """Create a Gemini client.

    Falls back to ``GOOGLE_API_KEY`` when *api_key* is not given. The
    optional *timeout_s* bounds every HTTP request the client makes.
    """
    api_key = api_key or os.getenv("GOOGLE_API_KEY")
    if not api_key:
        raise ValueError("GOOGLE_API_KEY environment variable not set")
    if timeout_s is None:
        return genai.Client(api_key=api_key)
    # HttpOptions takes milliseconds.
    return genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=int(timeout_s * 1000)))


def _is_rate_limit(exc: ClientError) -> bool:
    return "429" in str(exc) or "RESOURCE_EXHAUSTED" in str(exc)


def call_gemini(
    client: genai.Client,
    prompt: str,
    *,
    model: str = DEFAULT_GEMINI_MODEL,
    temperature: float = 0.2,
    max_tokens: int = 2048,
    max_retries: int = MAX_RETRIES,
) -> str:
    """Make a Gemini API call with retry logic.

    Retries on server errors and on 429 (rate limit) with exponential
    backoff; other client errors are raised immediately.
    """
    last_exception: Exception | None = None

    for attempt in range(max_retries):
        try:
            response = client.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
            return response.text or ""
        except ServerError as e:
            last_exception = e
        except ClientError as e:
            if not _is_rate_limit(e):
                raise
            last_exception = e
        if attempt < max_retries - 1:
            delay = BASE_DELAY * (2**attempt) + random.uniform(0, 1)  # noqa: S311
            logger.warning("Gemini call failed (%s), retry in %.1fs", last_exception, delay)
            time.sleep(delay)

    raise last_exception  # type: ignore[misc]


def parse_json(text: str) -> dict | list:
    """Extract and parse JSON from an LLM response that may contain markdown fences.

    Handles responses like:
        ```json\\n[...]\\n```
        Some text [json] more text
        Raw JSON
    """
    if not text:
        raise ValueError("Empty response from API")

    stripped = re.sub(r"```(?:json)?\s*\n?", "", text).strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    # Arrays first: the re-ranker answers with a list of objects.
    for pattern in (r"\[[\s\S]*\]", r"\{[\s\S]*\}"):
        match = re.search(pattern, stripped)
        if match:
            try:
                return json.loads(match.group())
            except json.JSONDecodeError:
                continue

    raise ValueError(f"Could not parse JSON from response: {text[:200]}")
