"""Shared pytest fixtures for Shot Guide tests."""

from __future__ import annotations

import base64
import io
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from PIL import Image

from shotguide.core.config import ShotguideConfig
from shotguide.core.models import PLAN_FIELD_NAMES, UserInput

TEST_BASE_URL = "https://gemini.test"


def text_response(text: str, finish_reason: str = "STOP") -> dict[str, Any]:
    """Build a ``generateContent`` response carrying *text*."""
    return {
        "candidates": [
            {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": finish_reason}
        ]
    }


def image_response(data: str, mime: str = "image/png") -> dict[str, Any]:
    """Build a ``generateContent`` response carrying one inline image."""
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here is your sketch."},
                        {"inlineData": {"mimeType": mime, "data": data}},
                    ]
                }
            }
        ]
    }


def png_base64(size: tuple[int, int] = (9, 16)) -> str:
    """Encode a small white PNG as base64."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color="white").save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class MockGemini:
    """In-memory stand-in for the ``generateContent`` endpoint.

    Requests are routed by model name: the image model gets ``image_reply``,
    everything else gets ``text_reply``.  Every request is recorded.
    """

    def __init__(self, text_model: str, image_model: str) -> None:
        self.text_model = text_model
        self.image_model = image_model
        self.requests: list[httpx.Request] = []
        self.text_reply: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json=text_response('{"plans": []}')
        )
        self.image_reply: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json=image_response(png_base64())
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if f"/models/{self.image_model}:" in request.url.path:
            return self.image_reply(request)
        return self.text_reply(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, model: str) -> list[httpx.Request]:
        return [r for r in self.requests if f"/models/{model}:" in r.url.path]

    @property
    def text_calls(self) -> list[httpx.Request]:
        return self.calls_to(self.text_model)

    @property
    def image_calls(self) -> list[httpx.Request]:
        return self.calls_to(self.image_model)

    def reply_text(self, text: str) -> None:
        self.text_reply = lambda request: httpx.Response(200, json=text_response(text))

    def reply_plans(self, plans: list[dict]) -> None:
        self.reply_text(json.dumps({"plans": plans}, ensure_ascii=False))

    def reply_json(self, payload: dict, status: int = 200, image: bool = False) -> None:
        reply = lambda request: httpx.Response(status, json=payload)  # noqa: E731
        if image:
            self.image_reply = reply
        else:
            self.text_reply = reply

    def reply_image(self, data: str, mime: str = "image/png") -> None:
        self.image_reply = lambda request: httpx.Response(200, json=image_response(data, mime))

    def last_body(self, model: str) -> dict:
        return json.loads(self.calls_to(model)[-1].content)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep developer environment variables out of configuration tests."""
    for name in ("SHOTGUIDE_API_KEY", "GEMINI_API_KEY", "API_KEY", "SHOTGUIDE_TEXT_BACKEND"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_config() -> ShotguideConfig:
    """Create a test configuration with a fake key and a fake gateway host.

    Returns:
        ShotguideConfig instance for testing
    """
    return ShotguideConfig(_env_file=None, api_key="test-key", base_url=TEST_BASE_URL)


@pytest.fixture
def keyless_config() -> ShotguideConfig:
    """Configuration without an API key."""
    return ShotguideConfig(_env_file=None, api_key="", base_url=TEST_BASE_URL)


@pytest.fixture
def make_plan() -> Callable[..., dict]:
    """Factory for complete wire-format plan records.

    Returns:
        ``make_plan(index, ratio, **overrides) -> dict``
    """

    def _make(index: int = 1, ratio: str = "9:16", **overrides) -> dict:
        plan = {name: f"{name} {index}" for name in PLAN_FIELD_NAMES}
        plan["title"] = f"Plan {index}"
        plan["targetAspectRatio"] = ratio
        plan["imagePrompt"] = f"a woman leaning on a railing, shot {index}"
        plan.update(overrides)
        return plan

    return _make


@pytest.fixture
def user_input() -> UserInput:
    """A valid submission asking for two portrait and one landscape plan."""
    return UserInput(
        person="A cellist in a long black dress",
        location="Riverside steps under a stone bridge",
        environment="Overcast afternoon, soft light",
        style="Quiet, cinematic, muted colours",
        portrait_count=2,
        landscape_count=1,
    )


@pytest.fixture
def mock_gemini(test_config: ShotguideConfig) -> MockGemini:
    return MockGemini(test_config.text_model, test_config.image_model)


@pytest_asyncio.fixture
async def http_client(mock_gemini: MockGemini) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client wired to :class:`MockGemini`."""
    async with httpx.AsyncClient(transport=mock_gemini.transport) as client:
        yield client


@pytest.fixture
def sketch_png() -> str:
    """Base64 payload of a small PNG sketch."""
    return png_base64()


@pytest.fixture
def sketch_data_uri(sketch_png: str) -> str:
    return f"data:image/png;base64,{sketch_png}"
