"""
Interactive CLI adapter for rryth.

Architectural role:
- Exposes the `rryth` chat command in a terminal session.
- Renders reply elements as text and writes generated images to disk.
- Delegates all work to `rryth.core.engine.ImageOrchestrator`.

Request lifecycle (per line):
1. Read stdin (off the event loop, so recall timers keep running).
2. Handle local control commands (`exit`/`quit`).
3. Pass the line to `ImageOrchestrator.execute`.
4. Print any returned failure/help text.

Side effects:
- Writes PNG files under `--output-dir`.
- Loads environment variables via `rryth.config` (`load_dotenv()`).
"""

import argparse
import asyncio
import base64
import logging
import os
import uuid

from rryth.config import PluginConfig
from rryth.core.engine import ImageOrchestrator, Session
from rryth.core.reply import Censor, Figure, Image, Text
from rryth.llm.translator import ChatTranslator


logger = logging.getLogger(__name__)


class ConsoleChannel:
    """Message channel that prints text and saves images as files."""

    def __init__(self, output_dir: str):
        self.output_dir = output_dir

    def _render(self, element) -> None:
        if isinstance(element, str):
            print(element)
        elif isinstance(element, Text):
            print(element.content)
        elif isinstance(element, Censor):
            self._render(element.child)
        elif isinstance(element, Figure):
            for child in element.children:
                self._render(child)
        elif isinstance(element, Image):
            print(f"[image] {self._save(element.url)}")

    def _save(self, url: str) -> str:
        _, _, data = url.partition("base64,")
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"{uuid.uuid4().hex}.png")
        with open(path, "wb") as f:
            f.write(base64.b64decode(data))
        return path

    async def send(self, content) -> list[str]:
        self._render(content)
        return [uuid.uuid4().hex]

    async def delete_message(self, channel_id: str, message_id: str) -> None:
        print(f"[recalled {message_id}]")


async def repl(orchestrator: ImageOrchestrator, session: Session) -> None:
    print("rryth CLI. Type a prompt (or a full `rryth ...` command); 'exit' to quit.")
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return

        line = line.strip()
        if not line:
            continue
        if line.lower() in ("exit", "quit"):
            return

        result = await orchestrator.execute(session, line)
        if result:
            print(result)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Generate images from chat-style rryth commands.")
    parser.add_argument("--output-dir", default=os.getenv("RRYTH_OUTPUT_DIR", "output"))
    parser.add_argument("--conversation", default="cli:local")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.getenv("RRYTH_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PluginConfig.from_env()
    translator = ChatTranslator.from_env(config.request_timeout) if config.translator else None
    orchestrator = ImageOrchestrator(config, translator=translator)
    session = Session(
        channel=ConsoleChannel(args.output_dir),
        conversation_id=args.conversation,
        channel_id=args.conversation,
        user_id="cli",
        nickname=os.getenv("USER", "cli"),
    )

    try:
        asyncio.run(repl(orchestrator, session))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
