"""
Dependency providers for the analyze endpoint.

Each request gets its own analyzer; tests override ``get_manuscript_analyzer``
via ``app.dependency_overrides`` to inject a fake model client.
"""
from __future__ import annotations

from app.config import settings
from app.services.gemini_client import GeminiClient
from app.services.manuscript_analyzer import ManuscriptAnalyzer
from app.services.model_invoker import ModelFallbackConfig, ModelInvoker


def build_model_invoker() -> ModelInvoker:
    client = GeminiClient(
        api_key=settings.GEMINI_API_KEY,
        base_url=settings.GEMINI_BASE_URL,
        timeout=settings.GEMINI_TIMEOUT,
    )
    return ModelInvoker(client, ModelFallbackConfig.from_settings(settings))


async def get_manuscript_analyzer() -> ManuscriptAnalyzer:
    """Build a request-scoped ManuscriptAnalyzer wired to the real Gemini API."""
    return ManuscriptAnalyzer(build_model_invoker(), config=settings)
