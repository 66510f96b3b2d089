"""
Thin async client for the Gemini ``generateContent`` REST endpoint.

One call = one HTTP request; no retries here. Non-200 responses are raised as
``GeminiAPIError`` carrying the HTTP status, the provider's error message,
its structured ``details`` list and the response headers, so the invocation
layer can classify the failure and honour any retry hint.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)


class GeminiAPIError(Exception):
    """A non-success response from the Gemini API."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[List[Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details or []
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}

    @classmethod
    def from_response(cls, resp: httpx.Response) -> "GeminiAPIError":
        """Build an error from a non-200 response, tolerating non-JSON bodies."""
        status_name = ""
        details: List[Any] = []
        message = resp.text[:300]
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            err = body["error"]
            message = str(err.get("message") or message)
            status_name = str(err.get("status") or "")
            if isinstance(err.get("details"), list):
                details = err["details"]

        label = f"{resp.status_code} {status_name}".strip()
        return cls(
            f"[{label}] {message}",
            status=resp.status_code,
            details=details,
            headers=dict(resp.headers),
        )


# ---------------------------------------------------------------------------
# Part helpers
# ---------------------------------------------------------------------------

def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def inline_data_part(mime_type: str, data: bytes) -> Dict[str, Any]:
    """Inline binary part (e.g. a PDF) encoded as base64."""
    return {
        "inlineData": {
            "mimeType": mime_type,
            "data": base64.b64encode(data).decode("ascii"),
        }
    }


def response_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate; empty string if none."""
    candidates = payload.get("candidates") or []
    if not candidates:
        feedback = payload.get("promptFeedback") or {}
        logger.warning(
            "Gemini returned no candidates (blockReason=%s)",
            feedback.get("blockReason", "unknown"),
        )
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(str(p.get("text", "")) for p in parts if isinstance(p, dict))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class GeminiClient:
    """POSTs to ``{base_url}/models/{model}:generateContent``."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 25.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout
        self._transport = transport

    def _timeout(self, limit: Optional[float]) -> httpx.Timeout:
        """Configured timeout, shortened to *limit* seconds when given."""
        seconds = self.timeout_seconds if limit is None else min(self.timeout_seconds, limit)
        return httpx.Timeout(seconds, connect=min(10.0, seconds))

    async def generate_content(
        self,
        model: str,
        contents: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Send one generation request and return the response text."""
        payload: Dict[str, Any] = {"contents": contents}
        if generation_config:
            payload["generationConfig"] = generation_config

        request_timeout = self._timeout(timeout)
        async with httpx.AsyncClient(timeout=request_timeout, transport=self._transport) as client:
            resp = await client.post(
                f"{self.base_url}/models/{model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self.api_key},
            )

        if resp.status_code != 200:
            raise GeminiAPIError.from_response(resp)

        return response_text(resp.json())
