"""
HTTP API adapter for the rryth orchestrator.

Architectural role:
- Expose the chat command over HTTP for hosts that cannot embed Python.
- Collect every message the orchestrator sends and return it as JSON.

Endpoints:
- `POST /v1/commands`: run one command for a conversation.
- `GET /v1/status`: in-flight job counts from the admission registry.

Response formatting:
- `messages[]`: `{id, content}` where `content` is a string or a serialized
  reply element tree (`figure`/`message`/`image`/`censor`).
- `error`: localized failure/help text, or `null` on success.

Side effects:
- Loads environment variables at import time via `rryth.config`.
- Shares one `ImageOrchestrator` (and its admission registry) across requests.
"""

import logging
import uuid
from functools import lru_cache
from typing import Any, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from rryth.config import PluginConfig
from rryth.core.engine import ImageOrchestrator, Session
from rryth.llm.translator import ChatTranslator


logger = logging.getLogger(__name__)

app = FastAPI(title="rryth")


class CommandRequest(BaseModel):
    command: str
    conversation_id: str
    channel_id: Optional[str] = None
    user_id: Optional[str] = None
    nickname: Optional[str] = None


class CommandResponse(BaseModel):
    messages: list[dict[str, Any]]
    error: Optional[str] = None


class CollectingChannel:
    """Message channel that records sent content for the HTTP response."""

    def __init__(self):
        self.messages: list[dict[str, Any]] = []

    async def send(self, content) -> list[str]:
        message_id = uuid.uuid4().hex
        body = content if isinstance(content, str) else content.to_dict()
        self.messages.append({"id": message_id, "content": body})
        return [message_id]

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        # Messages already left with the HTTP response; the host owns recall.
        logger.debug("Recall requested for %s in %s", message_id, channel_id)


@lru_cache(maxsize=1)
def get_orchestrator() -> ImageOrchestrator:
    config = PluginConfig.from_env()
    translator = ChatTranslator.from_env(config.request_timeout) if config.translator else None
    return ImageOrchestrator(config, translator=translator)


@app.post("/v1/commands", response_model=CommandResponse)
async def run_command(request: CommandRequest):
    """Run one `rryth` command and return everything it sent."""
    channel = CollectingChannel()
    session = Session(
        channel=channel,
        conversation_id=request.conversation_id,
        channel_id=request.channel_id or request.conversation_id,
        user_id=request.user_id,
        nickname=request.nickname,
    )
    error = await get_orchestrator().execute(session, request.command)
    return CommandResponse(messages=channel.messages, error=error)


@app.get("/v1/status")
def status():
    registry = get_orchestrator().registry
    return {
        "pending": registry.global_pending_count(),
        "conversations": {cid: len(jobs) for cid, jobs in registry.per_conversation.items()},
    }
