"""
Shared fixtures for the manuscript analyzer tests.

No network access: the Gemini client is replaced by ``FakeGeminiClient``,
whose ``handler`` decides per call whether to return text or raise. Sleeps in
the retry loop are recorded instead of awaited, and both sleeps and fake call
latency move a shared ``FakeClock``.
"""
from __future__ import annotations

import json
import os
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set the key *before* any app module is imported, so that the global
# settings instance sees it.
os.environ["GEMINI_API_KEY"] = "test-key"

from app.dependencies.analyzer import get_manuscript_analyzer  # noqa: E402
from app.main import app  # noqa: E402
from app.models.taxonomy import taxonomy_as_json_dict  # noqa: E402
from app.services.gemini_client import GeminiAPIError  # noqa: E402
from app.services.manuscript_analyzer import ManuscriptAnalyzer  # noqa: E402
from app.services.model_invoker import ModelFallbackConfig, ModelInvoker  # noqa: E402

Handler = Callable[[str, str], str]

SAMPLE_MANUSCRIPT = """The Lighthouse Keeper's Daughter

Mara had never seen the lamp go dark. Every night for seventeen years it had turned \
above the cliffs, steady as a heartbeat. Tonight the beam stuttered, and she ran.

"Father!" she called into the wind. They had warned her the stairs were rotten. \
The door had been locked from the inside, and the keys were gone.

She climbed anyway, counting each step, listening to the sea throw itself against \
the rocks below. At the top, the room was empty and the glass was cold.
"""


# ---------------------------------------------------------------------------
# Canned model payloads
# ---------------------------------------------------------------------------

def extraction_payload() -> Dict[str, Any]:
    return {
        "evidenceIndex": [
            {
                "id": "ev-1",
                "axisKey": "hookStrength",
                "startChar": 34,
                "endChar": 72,
                "text": "Mara had never seen the lamp go dark.",
                "note": "Opens on a broken routine.",
            },
            {
                "id": "ev-2",
                "axisKey": "notAnAxis",
                "startChar": 0,
                "endChar": 5,
                "text": "dropped",
                "note": "",
            },
        ],
        "languageStats": {
            "pronounProfile": {
                "firstPerson": 0,
                "secondPerson": 0,
                "thirdPerson": 12,
                "plural": 2,
                "genderNeutral": 2,
            },
            "readingEase": 71.5,
        },
    }


def scoring_payload(score: float = 4.0, confidence: float = 0.8) -> Dict[str, Any]:
    spider = {
        mode: [dict(axis, score=score, confidence=confidence) for axis in axes]
        for mode, axes in taxonomy_as_json_dict().items()
    }
    return {
        "spiderByMode": spider,
        "detectedGenre": "Mystery",
        "detectedSubgenre": "Gothic",
        "subgenreCandidates": ["Gothic", "Coastal Noir"],
        "highlights": {"strengths": ["Atmosphere"], "risks": ["Slow middle"]},
        "llmSummary": {
            "synopsis": ["A keeper's daughter searches a dark lighthouse."],
            "comps": ["Rebecca"],
            "redFlags": [],
            "marketPositioning": ["Upmarket gothic mystery"],
        },
    }


def prompt_text(contents: List[Dict[str, Any]]) -> str:
    """All text parts of a request, joined."""
    return "\n".join(
        part["text"]
        for message in contents
        for part in message.get("parts", [])
        if "text" in part
    )


def scripted_handler(model: str, prompt: str) -> str:
    """Answers each kind of call with a well-formed payload."""
    if "editorial scoring system" in prompt:
        return "```json\n" + json.dumps(scoring_payload()) + "\n```"
    if "text extractor" in prompt:
        return json.dumps(extraction_payload())
    return SAMPLE_MANUSCRIPT


def rate_limited(model: str = "gemini-1.5-flash") -> GeminiAPIError:
    return GeminiAPIError(
        f"[429 RESOURCE_EXHAUSTED] Quota exceeded for {model}",
        status=429,
    )


def model_not_found(model: str = "gemini-1.5-flash") -> GeminiAPIError:
    return GeminiAPIError(
        f"[404 NOT_FOUND] models/{model} is not found for API version v1beta",
        status=404,
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClock:
    """Monotonic clock that only moves when a test (or a fake) advances it."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGeminiClient:
    """
    Stands in for ``GeminiClient``; records every call it receives.

    Each call takes ``latency`` seconds on ``clock``. A call whose timeout is
    shorter than that uses up the timeout and raises ``httpx.ReadTimeout``.
    """

    def __init__(
        self,
        handler: Optional[Handler] = None,
        clock: Optional[FakeClock] = None,
        latency: float = 0.0,
    ) -> None:
        self.handler: Handler = handler or scripted_handler
        self.clock = clock or FakeClock()
        self.latency = latency
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(
        self,
        model: str,
        contents: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "contents": contents,
                "generation_config": generation_config,
                "timeout": timeout,
                "started_at": self.clock(),
            }
        )
        if timeout is not None and self.latency > timeout:
            self.clock.advance(timeout)
            raise httpx.ReadTimeout(f"{model} did not answer within {timeout:.1f}s")
        self.clock.advance(self.latency)
        return self.handler(model, prompt_text(contents))

    @property
    def models_called(self) -> List[str]:
        return [call["model"] for call in self.calls]


class RecordingSleep:
    """Replacement for ``asyncio.sleep`` that remembers the delays and advances the clock."""

    def __init__(self, clock: Optional[FakeClock] = None) -> None:
        self.clock = clock or FakeClock()
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fallback_config() -> ModelFallbackConfig:
    return ModelFallbackConfig(
        models=("gemini-1.5-flash", "gemini-1.5-pro", "gemini-1.0-pro"),
        max_attempts_per_model=3,
        backoff_schedule=(2.0, 4.0, 8.0),
        max_backoff_seconds=10.0,
        backoff_budget_seconds=20.0,
        request_deadline_seconds=50.0,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_gemini(fake_clock: FakeClock) -> FakeGeminiClient:
    return FakeGeminiClient(clock=fake_clock)


@pytest.fixture
def recording_sleep(fake_clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(clock=fake_clock)


@pytest.fixture
def invoker(
    fake_gemini: FakeGeminiClient,
    fallback_config: ModelFallbackConfig,
    recording_sleep: RecordingSleep,
    fake_clock: FakeClock,
) -> ModelInvoker:
    return ModelInvoker(fake_gemini, fallback_config, sleep=recording_sleep, clock=fake_clock)


@pytest.fixture
def analyzer(invoker: ModelInvoker) -> ManuscriptAnalyzer:
    return ManuscriptAnalyzer(invoker)


@pytest_asyncio.fixture
async def client(analyzer: ManuscriptAnalyzer) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the analyzer dependency
    overridden to use the fake Gemini client.
    """

    async def _override_get_manuscript_analyzer():
        return analyzer

    app.dependency_overrides[get_manuscript_analyzer] = _override_get_manuscript_analyzer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


