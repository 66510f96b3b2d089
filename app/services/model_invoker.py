"""
Model invocation with ordered fallback and bounded retry on rate limiting.

Public API
----------
classify_error(exc)            -> ErrorKind
retry_delay_seconds(exc)       -> float
RetryPolicy.after_failure(...) -> Transition   (pure, no I/O)
ModelInvoker.invoke(parts, generation_config, deadline) -> str

The invoker walks the candidate models in order. Rate-limited calls are
retried on the same model after a backoff; "model not found" and any other
failure move straight to the next candidate. Only when every candidate is
exhausted, or the request's ``Deadline`` has run out, does the call fail,
with ``AllModelsFailedError``.
"""
from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import math
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from app.config import Settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error classification
#
# The provider does not expose structured error types uniformly, so these are
# heuristics over status codes and message text. Keep every pattern here.
# ---------------------------------------------------------------------------

_NOT_FOUND_RE = re.compile(r"404|NOT_FOUND|model(.+)?not(.+)?found", re.IGNORECASE)
_RATE_LIMIT_RE = re.compile(r"429|rate limit|RESOURCE_EXHAUSTED", re.IGNORECASE)
_DELAY_SECONDS_RE = re.compile(r"([\d.]+)\s*s")


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


def error_status(exc: BaseException) -> Optional[int]:
    """HTTP-like status of *exc*, looking at the error, its cause, and any attached response."""
    for candidate in (exc, exc.__cause__):
        if candidate is None:
            continue
        status = getattr(candidate, "status", None)
        if isinstance(status, int):
            return status
        response = getattr(candidate, "response", None)
        status = getattr(response, "status_code", None)
        if isinstance(status, int):
            return status
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Status code first; message patterns only when no status is attached."""
    status = error_status(exc)
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.RATE_LIMITED

    message = str(exc)
    if _NOT_FOUND_RE.search(message):
        return ErrorKind.NOT_FOUND
    if _RATE_LIMIT_RE.search(message):
        return ErrorKind.RATE_LIMITED
    return ErrorKind.OTHER


def _parse_delay(value: Any) -> float:
    if not isinstance(value, str):
        return 0.0
    match = _DELAY_SECONDS_RE.search(value)
    if match:
        try:
            return max(0.0, float(match.group(1)))
        except ValueError:
            return 0.0
    try:
        return max(0.0, float(value))
    except ValueError:
        return 0.0


def retry_delay_seconds(exc: BaseException) -> float:
    """
    Provider-requested wait before retrying, or 0 if none was given.

    Looks for a ``google.rpc.RetryInfo`` entry in the error details
    (``"retryDelay": "13s"``) and then for a ``retry-after`` header.
    """
    for candidate in (exc, exc.__cause__):
        if candidate is None:
            continue
        details = getattr(candidate, "details", None)
        if isinstance(details, list):
            for detail in details:
                if isinstance(detail, dict) and "RetryInfo" in str(detail.get("@type", "")):
                    delay = _parse_delay(detail.get("retryDelay") or detail.get("retry_delay"))
                    if delay:
                        return delay
        headers = getattr(candidate, "headers", None)
        if headers is None:
            headers = getattr(getattr(candidate, "response", None), "headers", None)
        if headers is not None:
            delay = _parse_delay(headers.get("retry-after"))
            if delay:
                return delay
    return 0.0


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ModelFallbackConfig:
    """Everything the invoker needs to know about models, retries and backoff."""

    models: Tuple[str, ...]
    max_attempts_per_model: int = 3
    backoff_schedule: Tuple[float, ...] = (2.0, 4.0, 8.0)
    max_backoff_seconds: float = 10.0
    backoff_budget_seconds: float = 20.0
    request_deadline_seconds: float = 50.0

    def __post_init__(self) -> None:
        if not self.models:
            raise ValueError("ModelFallbackConfig needs at least one model")
        deduped = tuple(dict.fromkeys(m for m in self.models if m))
        object.__setattr__(self, "models", deduped)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelFallbackConfig":
        return cls(
            models=tuple(settings.get_model_order()),
            max_attempts_per_model=settings.MODEL_MAX_ATTEMPTS,
            backoff_schedule=tuple(settings.RATE_LIMIT_BACKOFF_SECONDS) or (2.0,),
            max_backoff_seconds=settings.MAX_RETRY_AFTER_SECONDS,
            backoff_budget_seconds=settings.BACKOFF_BUDGET_SECONDS,
            request_deadline_seconds=settings.REQUEST_DEADLINE_SECONDS,
        )


class Deadline:
    """
    Time allowance shared by every model call made for one request.

    Tracks the wall-clock expiry and the backoff sleep already spent, so a
    PDF upload's three invocations draw from one budget rather than three.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.expires_at = clock() + seconds
        self.slept_seconds = 0.0

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(math.inf)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


# ---------------------------------------------------------------------------
# Retry policy (pure state machine)
# ---------------------------------------------------------------------------

class Action(str, enum.Enum):
    RETRY = "retry"
    NEXT_MODEL = "next_model"
    GIVE_UP = "give_up"


@dataclasses.dataclass(frozen=True)
class RetryState:
    model_index: int = 0
    attempt: int = 1  # 1-based attempt number on the current model
    slept_seconds: float = 0.0


@dataclasses.dataclass(frozen=True)
class Transition:
    action: Action
    state: RetryState
    delay_seconds: float = 0.0


class RetryPolicy:
    """Decides what happens after a failed attempt. Holds no mutable state."""

    def __init__(self, config: ModelFallbackConfig) -> None:
        self.config = config

    def backoff_for(self, attempt: int, retry_after: float = 0.0) -> float:
        """Wait before attempt ``attempt + 1``; provider hint first, then the schedule."""
        if retry_after > 0:
            delay = retry_after
        else:
            schedule = self.config.backoff_schedule
            delay = schedule[min(attempt - 1, len(schedule) - 1)]
        return min(delay, self.config.max_backoff_seconds)

    def after_failure(
        self,
        state: RetryState,
        kind: ErrorKind,
        retry_after: float = 0.0,
        remaining_seconds: float = math.inf,
    ) -> Transition:
        """
        Next step after a failed attempt.

        A rate-limited attempt is retried only while attempts remain, the
        sleep fits the backoff budget, and waking up still leaves time before
        the request deadline (*remaining_seconds*).
        """
        if kind is ErrorKind.RATE_LIMITED and state.attempt < self.config.max_attempts_per_model:
            delay = self.backoff_for(state.attempt, retry_after)
            if (
                state.slept_seconds + delay <= self.config.backoff_budget_seconds
                and delay < remaining_seconds
            ):
                return Transition(
                    Action.RETRY,
                    dataclasses.replace(
                        state,
                        attempt=state.attempt + 1,
                        slept_seconds=state.slept_seconds + delay,
                    ),
                    delay,
                )
        return self._advance(state)

    def _advance(self, state: RetryState) -> Transition:
        next_index = state.model_index + 1
        if next_index >= len(self.config.models):
            return Transition(Action.GIVE_UP, state)
        return Transition(
            Action.NEXT_MODEL,
            RetryState(model_index=next_index, attempt=1, slept_seconds=state.slept_seconds),
        )


# ---------------------------------------------------------------------------
# Invoker
# ---------------------------------------------------------------------------

class GenerationClient(Protocol):
    async def generate_content(
        self,
        model: str,
        contents: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        ...


class AllModelsFailedError(RuntimeError):
    """Every candidate model was tried (or the deadline ran out) without a response."""

    def __init__(self, model: str, status: Optional[int], message: str) -> None:
        self.model = model
        self.status = status
        self.last_message = message
        super().__init__(
            f"All models failed. Last error (status {status if status is not None else 'unknown'}) "
            f"on {model}: {message}"
        )


class ModelInvoker:
    """Runs one generation request through the fallback/retry protocol."""

    def __init__(
        self,
        client: GenerationClient,
        config: ModelFallbackConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self.config = config
        self.policy = RetryPolicy(config)
        self._sleep = sleep
        self._clock = clock

    def start_deadline(self) -> Deadline:
        """A fresh request-scoped deadline on this invoker's clock."""
        return Deadline(self.config.request_deadline_seconds, clock=self._clock)

    async def invoke(
        self,
        parts: Sequence[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
        deadline: Optional[Deadline] = None,
    ) -> str:
        """
        Generate text, walking the model order.

        With a *deadline*, backoff sleep is charged to it and every HTTP call
        is given at most the time it has left. Without one, only the backoff
        budget of this single call applies.

        Raises:
            AllModelsFailedError: no model answered before the models or the
                deadline ran out.
        """
        deadline = deadline or Deadline.unbounded()
        contents = [{"role": "user", "parts": list(parts)}]
        state = RetryState(slept_seconds=deadline.slept_seconds)
        last_error: Optional[BaseException] = None

        while True:
            model = self.config.models[state.model_index]
            if deadline.expired:
                logger.warning("invoke: request deadline reached before trying %s", model)
                break

            remaining = deadline.remaining()
            try:
                text = await self._client.generate_content(
                    model,
                    contents,
                    generation_config,
                    timeout=None if math.isinf(remaining) else remaining,
                )
            except Exception as exc:
                last_error = exc
                kind = classify_error(exc)
                transition = self.policy.after_failure(
                    state, kind, retry_delay_seconds(exc), deadline.remaining()
                )
                logger.warning(
                    "invoke: %s attempt %d failed (%s, status=%s): %s -> %s",
                    model,
                    state.attempt,
                    kind.value,
                    error_status(exc),
                    str(exc)[:300],
                    transition.action.value,
                )
                if transition.action is Action.GIVE_UP:
                    break
                if transition.action is Action.RETRY:
                    await self._sleep(transition.delay_seconds)
                    deadline.slept_seconds = transition.state.slept_seconds
                state = transition.state
                continue

            if state.model_index > 0 or state.attempt > 1:
                logger.info(
                    "invoke: succeeded on %s (attempt %d)", model, state.attempt
                )
            return text

        if last_error is None:
            raise AllModelsFailedError(
                model=self.config.models[state.model_index],
                status=None,
                message="request deadline exceeded",
            )
        raise AllModelsFailedError(
            model=self.config.models[state.model_index],
            status=error_status(last_error),
            message=str(last_error),
        )
