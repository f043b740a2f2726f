"""Reply assembly and auto-recall scheduling.

Reply model:
    Replies are small trees of elements the chat host knows how to render:
    `Text` (a message line attributed to the requester), `Image` (a URL, here a
    base64 `data:` URL), `Censor` (moderation wrapper around one element) and
    `Figure` (forwarded multi-message group).

Output modes:
    - `minimal`: the image element only.
    - `normal`: seed line, prompt line, image.
    - `verbose`: seed/model/scale/strength block, prompt line, negative prompt
      line, image, workstation line.

Recall:
    `schedule_recall` starts a detached asyncio task that deletes every sent
    message after a delay. Its result is never awaited and deletion failures are
    logged only.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol, Union

from rryth.locales import text


logger = logging.getLogger(__name__)

MODEL_LABEL = "Anything 3.0"
WORKSTATION_ID = "42"


@dataclass(frozen=True)
class Text:
    content: str
    user_id: Optional[str] = None
    nickname: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": "message", "userId": self.user_id, "nickname": self.nickname, "content": self.content}


@dataclass(frozen=True)
class Image:
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "url": self.url}


@dataclass(frozen=True)
class Censor:
    child: "Element"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "censor", "children": [self.child.to_dict()]}


@dataclass(frozen=True)
class Figure:
    children: tuple["Element", ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "figure", "children": [child.to_dict() for child in self.children]}


Element = Union[Text, Image, Censor, Figure]


class MessageChannel(Protocol):
    """Host message channel used to deliver and recall replies."""

    async def send(self, content: Union[str, Element]) -> list[str]:
        """Send content and return the ids of the emitted messages."""
        ...

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        ...


def image_element(payload: str, censor: bool = False) -> Element:
    image = Image("data:image/png;base64," + payload)
    return Censor(image) if censor else image


def assemble_reply(
    image: str,
    *,
    seed: int,
    prompt: str,
    negative_prompt: str,
    scale: float,
    strength: Optional[float] = None,
    output: str = "normal",
    censor: bool = False,
    user_id: Optional[str] = None,
    nickname: Optional[str] = None,
    locale: str = "zh",
) -> Element:
    """Build the reply for one generated image.

    Args:
        image: First backend image payload (base64, no data-URL prefix).
        strength: Denoising strength; only reported for image-to-image requests.
        output: `minimal`, `normal` or `verbose`.
        censor: Wrap the image in a moderation `Censor` element.

    Returns:
        A bare image element for `minimal`, otherwise a `Figure`.
    """
    safe_image = image_element(image, censor)
    if output == "minimal":
        return safe_image

    verbose = output == "verbose"

    def line(content: str) -> Text:
        return Text(content, user_id, nickname)

    header = [text("seed", seed, locale=locale)]
    if verbose:
        header.append(text("model", MODEL_LABEL, locale=locale))
        header.append(text("scale", scale, locale=locale))
        if strength is not None:
            header.append(text("strength", strength, locale=locale))

    children = [line("\n".join(header)), line(text("prompt", prompt, locale=locale))]
    if verbose:
        children.append(line(text("undesired", negative_prompt, locale=locale)))
    children.append(safe_image)
    if verbose:
        children.append(line(text("workstation", WORKSTATION_ID, locale=locale)))
    return Figure(tuple(children))


_background_tasks: set[asyncio.Task] = set()


async def _recall(channel: MessageChannel, channel_id: str, message_ids: list[str], delay: float) -> None:
    await asyncio.sleep(delay)
    for message_id in message_ids:
        try:
            await channel.delete_message(channel_id, message_id)
        except Exception:
            logger.warning("Failed to recall message %s in %s", message_id, channel_id, exc_info=True)


def schedule_recall(
    channel: MessageChannel,
    channel_id: str,
    message_ids: Iterable[str],
    delay: float,
) -> Optional[asyncio.Task]:
    """Schedule deletion of `message_ids` after `delay` seconds.

    Returns the detached task (for tests), or `None` when `delay` is falsy or
    there is nothing to delete. Callers are not expected to await it.
    """
    message_ids = list(message_ids)
    if not delay or not message_ids:
        return None
    task = asyncio.get_running_loop().create_task(_recall(channel, channel_id, message_ids, delay))
    # The loop keeps only weak references to tasks.
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
