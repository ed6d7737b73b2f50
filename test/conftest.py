from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable, List, Tuple

import httpx
import pytest

# Load dotenv files early so test fixtures can read overrides via os.getenv
try:  # pragma: no cover
    from dotenv import load_dotenv

    TEST_ROOT = Path(__file__).resolve().parent
    load_dotenv(TEST_ROOT / ".env", override=False)
except ImportError:
    pass

from assistmesh_ai.agent_core.capabilities.base import Capability, ExecutionContext
from assistmesh_ai.agent_core.factory import make_capability
from assistmesh_ai.agent_core.runtime.context import PlanContext
from assistmesh_ai.agent_core.schemas.domain import TargetType
from assistmesh_ai.core.config import Settings


@pytest.fixture
def test_settings() -> Settings:
    """Settings with short time budgets so timeout paths finish quickly."""
    return Settings().with_overrides(step_timeout_seconds=1.0, max_execution_seconds=5.0)


@pytest.fixture
def plan_context() -> Callable[..., PlanContext]:
    def _make(user_message: str = "hello", **kwargs: Any) -> PlanContext:
        kwargs.setdefault("caller_id", "+15550001111")
        kwargs.setdefault("channel", "sms")
        return PlanContext(user_message=user_message, **kwargs)

    return _make


class RecordingCapability:
    """Async capability stub that records every call and returns a fixed value."""

    def __init__(self, result: Any = "ok") -> None:
        self.result = result
        self.calls: List[Tuple[str, ExecutionContext]] = []

    async def __call__(self, task: str, ctx: ExecutionContext) -> Any:
        self.calls.append((task, ctx))
        return self.result


@pytest.fixture
def recording_capability() -> Callable[..., Tuple[Capability, RecordingCapability]]:
    def _make(
        name: str,
        result: Any = "ok",
        *,
        target_type: TargetType = TargetType.agent,
        description: str = "test capability",
    ) -> Tuple[Capability, RecordingCapability]:
        recorder = RecordingCapability(result)
        cap = make_capability(recorder, name=name, description=description, target_type=target_type)
        return cap, recorder

    return _make


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
