"""Shared pytest fixtures for image client tests."""

import io
import sys
from pathlib import Path

import httpx
import pytest
from PIL import Image

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from utils.config import ImageClientConfig  # noqa: E402

ASSET_URL = "https://images.example.com/results/img-123.png"


def make_png(width: int = 32, height: int = 32, mode: str = "RGBA", color=None) -> bytes:
    """Encode a solid-color test image."""
    if color is None:
        color = (200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def success_body(url: str = ASSET_URL) -> dict:
    return {"created": 1713000000, "data": [{"url": url}]}


def error_body(message: str, error_type: str = "invalid_request_error") -> dict:
    return {"error": {"message": message, "type": error_type, "param": None, "code": None}}


class RecordingSleep:
    """Async sleep replacement that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedServer:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def methods(self) -> list[str]:
        return [request.method for request in self.requests]


@pytest.fixture
def png_bytes() -> bytes:
    """Small RGBA PNG."""
    return make_png()


@pytest.fixture
def result_png() -> bytes:
    """PNG served by the asset URL."""
    return make_png(64, 64, color=(10, 120, 240, 255))


@pytest.fixture(scope="session")
def oversized_png() -> bytes:
    """PNG whose pixel count trips Pillow's decompression bomb limit."""
    return make_png(20000, 10000, mode="1", color=0)


@pytest.fixture
def client_config() -> ImageClientConfig:
    return ImageClientConfig(api_key="test_openai_key")


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
