"""Issue titles from descriptions via an OpenAI-compatible chat endpoint.

Best effort: every failure comes back as TitleResult(success=False) and the
caller falls back to fallback_title().
"""

import logging
import re
import time
from typing import Any, Dict

import requests

from issue_make.config import AISettings
from issue_make.models import TitleResult

LOG = logging.getLogger("issue_make.title_generator")

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates concise, clear issue titles based on descriptions. "
    "Return only the title, no additional text."
)
USER_PROMPT = "Generate a short, clear issue title for this description: {description}"

MAX_TITLE_LENGTH = 100

_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_PREFIX_RE = re.compile(r"^(Title:|Issue:|Summary:)\s*", re.IGNORECASE)


class TitleGeneratorError(Exception):
    """Raised when the completion endpoint fails or returns no text."""

    pass


def clean_title(title: str) -> str:
    """Drop surrounding quotes and Title:/Issue:/Summary: prefixes, cut to 100 chars."""
    s = _QUOTES_RE.sub("", title.strip())
    s = _PREFIX_RE.sub("", s)
    return s[:MAX_TITLE_LENGTH].strip()


def fallback_title() -> str:
    """Timestamp title used when no generated title is available."""
    return f"Issue-{int(time.time() * 1000)}"


class TitleGenerator:
    """Chat-completions client for title generation."""

    def __init__(self, settings: AISettings) -> None:
        self._settings = settings
        self._url = settings.url.rstrip("/")
        self._session = requests.Session()
        api_key = settings.api_resolved
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"
        self._session.headers["Content-Type"] = "application/json"

    def is_configured(self) -> bool:
        return bool(self._url and self._settings.api_resolved and self._settings.model)

    def _complete(self, messages: list[Dict[str, str]], max_tokens: int, temperature: float | None = None) -> str:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        try:
            resp = self._session.request(
                "POST",
                f"{self._url}/chat/completions",
                json=payload,
                timeout=self._settings.timeout,
            )
        except requests.RequestException as e:
            raise TitleGeneratorError(f"request failed: {e}") from e
        if resp.status_code >= 400:
            msg = resp.text or resp.reason or str(resp.status_code)
            try:
                msg = resp.json().get("error", {}).get("message", msg)
            except (ValueError, AttributeError):
                pass
            raise TitleGeneratorError(f"{resp.status_code}: {msg}")
        try:
            choices = resp.json().get("choices") or []
            content = (choices[0].get("message") or {}).get("content") if choices else None
        except (ValueError, AttributeError) as e:
            raise TitleGeneratorError(f"unexpected response: {e}") from e
        return (content or "").strip()

    def generate_title(self, description: str) -> TitleResult:
        """Ask the model for a title; never raises for API failures."""
        if not description or not description.strip():
            return TitleResult(success=False, error="Description cannot be empty")
        if not self.is_configured():
            return TitleResult(success=False, error="AI is not configured; set url, api and model in settings")
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT.format(description=description)},
        ]
        try:
            raw = self._complete(messages, max_tokens=50, temperature=0.7)
        except TitleGeneratorError as e:
            LOG.warning("Title generation failed: %s", e)
            return TitleResult(success=False, error=f"AI generation failed: {e}")
        title = clean_title(raw)
        if not title:
            return TitleResult(success=False, error="Failed to generate title from AI response")
        LOG.debug("Generated title %r", title)
        return TitleResult(success=True, title=title)

    def check_connection(self, prompt: str = "hello") -> tuple[str, float]:
        """Send prompt and return (reply, seconds). Raises TitleGeneratorError."""
        if not self.is_configured():
            raise TitleGeneratorError("configuration is incomplete; url, api and model are required")
        start = time.monotonic()
        reply = self._complete([{"role": "user", "content": prompt}], max_tokens=100)
        return reply, time.monotonic() - start
