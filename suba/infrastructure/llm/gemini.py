"""
Minimal client for the Gemini ``generateContent`` REST endpoint.

One-shot prompt in, concatenated text out. No streaming, no retries.
"""
import logging

import requests

from suba.config import Settings

logger = logging.getLogger(__name__)


class GeminiError(RuntimeError):
    pass


class GeminiClient:
    def __init__(self, api_key: str, model: str, base_url: str, timeout: float = 30.0):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient | None":
        """Return a client, or None when no API key is configured."""
        if not settings.GEMINI_API_KEY:
            return None
        return cls(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_API_URL,
            timeout=settings.GEMINI_TIMEOUT,
        )

    def generate_text(self, prompt: str) -> str:
        """
        Send ``prompt`` and return the text of the first candidate.

        Raises:
            requests.RequestException: transport failure or non-2xx status
            GeminiError: response without any text part
        """
        resp = requests.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()

        candidates = data.get("candidates") or []
        if not candidates:
            raise GeminiError("Gemini response has no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise GeminiError("Gemini response has no text")
        logger.info("Gemini %s returned %d chars", self.model, len(text))
        return text
