"""
Anthropic Messages API client.

Synchronous, timeout-bounded calls to the external reasoning collaborator.
Every failure mode (transport error, timeout, non-200, empty body) is
raised as ExternalJudgeError; callers never receive a fabricated result.
"""
import logging
import re
import time
from typing import Optional

import requests

from ..config import (
    ANTHROPIC_API_KEY, ANTHROPIC_BASE_URL, JUDGE_MODEL,
    JUDGE_TIMEOUT_SECONDS, JUDGE_MAX_TOKENS,
)
from ..exceptions import ExternalJudgeError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

_FENCE_PATTERN = re.compile(r"```(?:json)?\n?")


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    return _FENCE_PATTERN.sub("", text or "").strip()


class AnthropicClient:
    """Thin wrapper over POST /messages."""

    def __init__(
        self,
        api_key: str = ANTHROPIC_API_KEY,
        base_url: str = ANTHROPIC_BASE_URL,
        model: str = JUDGE_MODEL,
        timeout: float = JUDGE_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, system: str, user_message: str, max_tokens: int = JUDGE_MAX_TOKENS) -> str:
        """Send one message and return the concatenated text blocks."""
        start_time = time.time()
        url = f"{self.base_url.rstrip('/')}/messages"
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        request_body = {
            "model": self.model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user_message}],
        }

        try:
            response = self.session.post(url, headers=headers, json=request_body, timeout=self.timeout)
        except requests.Timeout:
            logger.error(f"External judge timed out after {self.timeout}s")
            raise ExternalJudgeError(f"External judge timed out after {self.timeout}s")
        except requests.RequestException as e:
            logger.error(f"External judge request failed: {e}")
            raise ExternalJudgeError(f"External judge request failed: {e}")

        if response.status_code != 200:
            logger.error(f"External judge returned HTTP {response.status_code}")
            raise ExternalJudgeError(
                f"External judge request failed: {response.status_code} - {response.text[:200]}"
            )

        try:
            response_data = response.json()
        except ValueError:
            raise ExternalJudgeError("External judge returned a non-JSON response body")

        content = ""
        for block in response_data.get("content") or []:
            if block.get("type") == "text":
                content += block.get("text", "")

        response_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"External judge responded in {response_time_ms}ms using {self.model}")

        if not content.strip():
            raise ExternalJudgeError("External judge returned no text content")
        return content
