# render_scout/ai/client.py
"""
Remote text-classification client (OpenAI-compatible chat completions, Groq by default).

One operation: :meth:`GroqClient.classify` sends a prompt plus a JSON context
and returns the raw label text. Failures map onto the classifier error
taxonomy in :mod:`render_scout.errors`.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from render_scout.config import AiConfig
from render_scout.errors import (
    ClassifierAuthError,
    ClassifierError,
    ClassifierTimeout,
    InvalidResponse,
    QuotaExceeded,
)
from render_scout.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


def build_messages(prompt: str, data: Any = None, max_chars: int = 20000) -> List[Dict[str, str]]:
    if data is None:
        return [{"role": "user", "content": prompt}]
    try:
        serialized = json.dumps(data, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        serialized = str(data)
    return [
        {"role": "user", "content": prompt},
        {"role": "user", "content": f"Context:\n{serialized[:max_chars]}"},
    ]


class GroqClient:
    """Thin aiohttp wrapper around a chat-completions endpoint."""

    def __init__(self, session: ClientSession, config: AiConfig) -> None:
        self.session = session
        self.config = config

    async def classify(self, prompt: str, context: Any = None, *, timeout: float = 15.0) -> str:
        """Return the model's reply text; raise a ClassifierError subclass otherwise."""
        if not self.config.api_key:
            raise ClassifierAuthError("GROQ_API_KEY is not set")
        payload = {
            "model": self.config.model,
            "messages": build_messages(prompt, context, self.config.max_context_chars),
            "temperature": self.config.temperature,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        try:
            async with self.session.post(
                self.config.api_url,
                json=payload,
                headers=headers,
                timeout=ClientTimeout(total=timeout),
            ) as resp:
                if resp.status == 429:
                    raise QuotaExceeded(f"rate limited: {await self._body(resp)}")
                if resp.status == 401:
                    raise ClassifierAuthError(f"unauthorized: {await self._body(resp)}")
                if resp.status >= 400:
                    raise ClassifierError(f"API error {resp.status}: {await self._body(resp)}")
                try:
                    body = await resp.json(content_type=None)
                except (ValueError, ClientError) as exc:
                    raise InvalidResponse("response is not JSON") from exc
        except asyncio.TimeoutError as exc:
            raise ClassifierTimeout(f"no answer within {timeout}s") from exc
        except ClientError as exc:
            raise ClassifierError(f"transport error: {exc}") from exc

        text = self._message_text(body)
        if not text:
            raise InvalidResponse("empty or malformed completion")
        return text

    @staticmethod
    def _message_text(body: Any) -> Optional[str]:
        try:
            text = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        if not isinstance(text, str) or not text.strip():
            return None
        return text

    @staticmethod
    async def _body(resp) -> str:
        try:
            return (await resp.text())[:500]
        except (ClientError, UnicodeDecodeError):
            return ""


__all__ = ["GroqClient", "build_messages"]
