"""Shared fixtures and fakes for rryth tests."""

import base64
import io

import pytest
from PIL import Image

from rryth.config import PluginConfig


class FakeChannel:
    """Message channel that records sends and deletions."""

    def __init__(self):
        self.sent = []
        self.deleted = []
        self._next_id = 0

    async def send(self, content):
        self._next_id += 1
        self.sent.append(content)
        return [f"m{self._next_id}"]

    async def delete_message(self, channel_id, message_id):
        self.deleted.append((channel_id, message_id))


class FakeTranslator:

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def translate(self, text, target):
        self.calls.append((text, target))
        if self.error is not None:
            raise self.error
        return self.answer


def make_png(width=64, height=48) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def png_data_url(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def config():
    return PluginConfig(endpoint="https://backend.test/", weigh=512, hight=512)


@pytest.fixture
def channel():
    return FakeChannel()
