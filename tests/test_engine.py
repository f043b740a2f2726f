import asyncio
import json

import httpx
import pytest

from rryth.config import PluginConfig
from rryth.core.admission import AdmissionRegistry
from rryth.core.engine import ImageOrchestrator, Session
from rryth.core.reply import Censor, Figure, Image
from rryth.image.client import GenerationClient

from conftest import FakeTranslator


class Backend:
    """MockTransport handler recording backend payloads."""

    def __init__(self, response=None, error=None):
        self.response = response or httpx.Response(200, json={"images": ["aW1n"]})
        self.error = error
        self.payloads = []

    def __call__(self, request):
        self.payloads.append(json.loads(request.content))
        if self.error is not None:
            raise self.error
        return self.response


def make_orchestrator(config, backend, **kwargs):
    client = GenerationClient(config.endpoint, transport=httpx.MockTransport(backend))
    return ImageOrchestrator(config, client=client, **kwargs)


def make_session(channel, conversation="group:1"):
    return Session(channel=channel, conversation_id=conversation, channel_id="c1", user_id="u1", nickname="Nick")


@pytest.mark.asyncio
async def test_successful_command(channel):
    backend = Backend()
    config = PluginConfig(endpoint="https://backend.test/", weigh=512, hight=512, locale="en")
    orchestrator = make_orchestrator(config, backend)

    result = await orchestrator.execute(make_session(channel), "rryth cat, sky -x 5")

    assert result is None
    assert backend.payloads == [{
        "prompt": "cat, sky",
        "negative_prompt": "",
        "seed": 5,
        "cfg_scale": 11,
        "width": 512,
        "height": 512,
        "steps": 28,
    }]
    assert channel.sent[0] == "Drawing, please wait..."
    assert isinstance(channel.sent[1], Figure)
    assert channel.sent[1].children[-1] == Image("data:image/png;base64,aW1n")
    assert orchestrator.registry.global_pending_count() == 0


@pytest.mark.asyncio
async def test_empty_command_returns_help(config, channel):
    orchestrator = make_orchestrator(config, Backend())
    assert "rryth" in await orchestrator.execute(make_session(channel), "rryth")
    assert channel.sent == []


@pytest.mark.asyncio
async def test_strict_forbidden_term_blocks_backend_call(channel):
    backend = Backend()
    config = PluginConfig(endpoint="https://backend.test/", forbidden="nsfw!", locale="en")
    orchestrator = make_orchestrator(config, backend)

    result = await orchestrator.execute(make_session(channel), "rryth cat, nsfw")

    assert result == "Your input contains forbidden words."
    assert backend.payloads == []
    assert channel.sent == []


@pytest.mark.asyncio
async def test_loose_forbidden_term_is_stripped(channel):
    backend = Backend()
    config = PluginConfig(endpoint="https://backend.test/", forbidden="gore")
    orchestrator = make_orchestrator(config, backend)

    assert await orchestrator.execute(make_session(channel), "rryth cat, gore") is None
    assert backend.payloads[0]["prompt"] == "cat"


@pytest.mark.asyncio
async def test_reload_rebuilds_forbidden_rules(channel):
    backend = Backend()
    config = PluginConfig(endpoint="https://backend.test/")
    orchestrator = make_orchestrator(config, backend)
    orchestrator.reload(config.model_copy(update={"forbidden": "cat!"}))

    assert await orchestrator.execute(make_session(channel), "rryth cat") == "输入含有违禁词。"
    assert backend.payloads == []


@pytest.mark.asyncio
async def test_prompt_punctuation_reaches_backend(config, channel):
    backend = Backend()
    orchestrator = make_orchestrator(config, backend)
    result = await orchestrator.execute(make_session(channel), r"rryth girl's hat, \(cat\), -sky -x 1")
    assert result is None
    assert backend.payloads[0]["prompt"] == r"girl's hat, \(cat\), -sky"


@pytest.mark.asyncio
async def test_bad_resolution_is_reported(config, channel):
    backend = Backend()
    orchestrator = make_orchestrator(config, backend)
    result = await orchestrator.execute(make_session(channel), "rryth cat -r abc")
    assert result == "请输入正确的分辨率，例如 512x768。"
    assert backend.payloads == []


@pytest.mark.asyncio
async def test_backend_errors_release_job(channel):
    backend = Backend(response=httpx.Response(402))
    config = PluginConfig(endpoint="https://backend.test/", maxConcurrency=1, locale="en")
    orchestrator = make_orchestrator(config, backend)

    result = await orchestrator.execute(make_session(channel), "rryth cat")

    assert result == "The access token is not authorized."
    assert orchestrator.registry.global_pending_count() == 0
    assert orchestrator.registry.conversation_count("group:1") == 0


@pytest.mark.asyncio
async def test_backend_message_is_verbatim(config, channel):
    backend = Backend(response=httpx.Response(400, json={"message": "queue is full"}))
    orchestrator = make_orchestrator(config, backend)
    assert await orchestrator.execute(make_session(channel), "rryth cat") == "queue is full"


@pytest.mark.asyncio
async def test_timeout_is_reported(config, channel):
    backend = Backend(error=httpx.ReadTimeout("slow"))
    orchestrator = make_orchestrator(config, backend)
    assert await orchestrator.execute(make_session(channel), "rryth cat") == "请求超时。"
    assert orchestrator.registry.global_pending_count() == 0


@pytest.mark.asyncio
async def test_empty_image_list_is_unknown_error(config, channel):
    backend = Backend(response=httpx.Response(200, json={"images": []}))
    orchestrator = make_orchestrator(config, backend)
    assert await orchestrator.execute(make_session(channel), "rryth cat") == "发生未知错误。"
    assert orchestrator.registry.global_pending_count() == 0


@pytest.mark.asyncio
async def test_concurrency_ceiling_and_pending_notice(channel):
    gate = asyncio.Event()

    async def slow_backend(request):
        await gate.wait()
        return httpx.Response(200, json={"images": ["aW1n"]})

    config = PluginConfig(endpoint="https://backend.test/", maxConcurrency=1, locale="en")
    client = GenerationClient(config.endpoint, transport=httpx.MockTransport(slow_backend))
    registry = AdmissionRegistry()
    orchestrator = ImageOrchestrator(config, client=client, registry=registry)

    first = asyncio.create_task(orchestrator.execute(make_session(channel, "group:1"), "rryth cat"))
    await asyncio.sleep(0.05)
    assert registry.conversation_count("group:1") == 1

    rejected = await orchestrator.execute(make_session(channel, "group:1"), "rryth dog")
    assert rejected == "A job is already running here, please try again later."

    other = asyncio.create_task(orchestrator.execute(make_session(channel, "group:2"), "rryth dog"))
    await asyncio.sleep(0.05)
    assert "Drawing, 1 request(s) ahead of you..." in channel.sent
    assert registry.global_pending_count() == 2

    gate.set()
    assert await first is None
    assert await other is None
    assert registry.global_pending_count() == 0


@pytest.mark.asyncio
async def test_image_to_image_uses_fetched_size(channel, png_data_url):
    backend = Backend()
    config = PluginConfig(endpoint="https://backend.test/", strength=0.6)
    orchestrator = make_orchestrator(config, backend)

    command = f'rryth <image url="{png_data_url}"/> cat'
    assert await orchestrator.execute(make_session(channel), command) is None

    payload = backend.payloads[0]
    assert (payload["width"], payload["height"]) == (64, 48)
    assert payload["init_images"] == [png_data_url]
    assert payload["denoising_strength"] == 0.6
    assert payload["steps"] == 50


@pytest.mark.asyncio
async def test_download_error_skips_backend(config, channel):
    backend = Backend()
    orchestrator = make_orchestrator(config, backend)
    command = 'rryth <image url="data:image/png;base64,bm9wZQ=="/> cat'
    assert await orchestrator.execute(make_session(channel), command) == "图片解析失败。"
    assert backend.payloads == []
    assert orchestrator.registry.global_pending_count() == 0


@pytest.mark.asyncio
async def test_translation_and_censor(channel):
    backend = Backend()
    translator = FakeTranslator(answer="cat ears")
    config = PluginConfig(endpoint="https://backend.test/", censor=True, output="minimal")
    orchestrator = make_orchestrator(config, backend, translator=translator)

    assert await orchestrator.execute(make_session(channel), "rryth 1girl, 猫耳") is None
    assert backend.payloads[0]["prompt"] == "1girl, cat ears"
    assert channel.sent[-1] == Censor(Image("data:image/png;base64,aW1n"))


@pytest.mark.asyncio
async def test_translation_disabled(channel):
    backend = Backend()
    translator = FakeTranslator(answer="cat ears")
    config = PluginConfig(endpoint="https://backend.test/", translator=False)
    orchestrator = make_orchestrator(config, backend, translator=translator)

    await orchestrator.execute(make_session(channel), "rryth 猫耳")
    assert translator.calls == []
    assert backend.payloads[0]["prompt"] == "猫耳"


@pytest.mark.asyncio
async def test_recall_timer_deletes_reply(channel):
    config = PluginConfig(endpoint="https://backend.test/", recallTimeout=0.01)
    orchestrator = make_orchestrator(config, Backend())

    assert await orchestrator.execute(make_session(channel), "rryth cat") is None
    await asyncio.sleep(0.1)
    assert channel.deleted == [("c1", "m2")]
