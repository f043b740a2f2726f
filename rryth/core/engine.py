"""Command orchestration for prompt-to-image requests.

Architectural role:
    Wires the pipeline components together for one chat command and is the
    single boundary where failures become user-facing text.

Control-flow model:
    1. Parse the command line (`rryth.api.command`) when given raw text.
    2. Compile the prompt against the active forbidden rules.
    3. Translate CJK fragments when enabled (best effort).
    4. Admit the job in the `AdmissionRegistry`; reject over the ceiling.
    5. Download the source image, if any, and build the backend request.
    6. Send the waiting/pending notice and call the backend.
    7. Release the job (every exit path), assemble and send the reply.
    8. Schedule auto-recall of the reply when configured.

Error handling strategy:
    `RrythError` subclasses are rendered through `rryth.locales`;
    `BackendMessageError` is shown verbatim; anything else is logged with a
    traceback and reported as `unknown-error`. Nothing is retried.

Concurrency:
    Runs on one asyncio event loop. Registry access never spans an `await`, so
    admission for one invocation completes before its network calls start and
    release completes before `run` returns.

Side effects:
    Sends messages through the session channel, mutates the registry, and may
    start a detached recall task.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from rryth.api.command import parse_command
from rryth.config import PluginConfig
from rryth.core.admission import AdmissionRegistry
from rryth.core.errors import BackendMessageError, RrythError
from rryth.core.reply import MessageChannel, assemble_reply, schedule_recall
from rryth.image.client import GenerationClient
from rryth.image.fetch import ImageFetcher
from rryth.image.request_builder import GenerationOptions, build_request
from rryth.locales import text
from rryth.nlp.translation import Translator, translate_prompt
from rryth.prompting.compiler import compile_prompt
from rryth.safety.forbidden import ForbiddenRuleSet


logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Invocation context provided by the chat host.

    `conversation_id` scopes the concurrency ceiling (for example
    `platform:channel`); `channel_id` addresses message deletion.
    """

    channel: MessageChannel
    conversation_id: str
    channel_id: str
    user_id: Optional[str] = None
    nickname: Optional[str] = None


class ImageOrchestrator:

    def __init__(
        self,
        config: PluginConfig,
        *,
        registry: Optional[AdmissionRegistry] = None,
        client: Optional[GenerationClient] = None,
        fetcher: Optional[ImageFetcher] = None,
        translator: Optional[Translator] = None,
    ) -> None:
        self.registry = registry or AdmissionRegistry()
        self.forbidden = ForbiddenRuleSet()
        self.translator = translator
        self._client = client
        self._fetcher = fetcher
        self.reload(config)

    def reload(self, config: PluginConfig) -> None:
        """Apply a new configuration; forbidden rules are rebuilt immediately."""
        self.forbidden.reload(config.forbidden)
        self.client = self._client or GenerationClient(
            config.endpoint,
            headers=config.headers,
            timeout=config.request_timeout,
        )
        self.fetcher = self._fetcher or ImageFetcher(
            timeout=config.request_timeout,
            max_bytes=config.max_image_bytes,
        )
        self.config = config

    def text(self, key: str, *params) -> str:
        return text(key, *params, locale=self.config.locale)

    def render_error(self, err: RrythError) -> str:
        if isinstance(err, BackendMessageError):
            return err.message
        return self.text(err.locale_key, *err.params)

    async def execute(self, session: Session, command: str) -> Optional[str]:
        """Parse and run a raw command line.

        Returns:
            Text the host should send back (help or a failure message), or
            `None` when the reply was already delivered through the channel.
        """
        try:
            prompts, options = parse_command(command)
        except RrythError as err:
            return self.render_error(err)
        return await self.run(session, prompts, options)

    async def run(
        self,
        session: Session,
        prompts: str,
        options: Optional[GenerationOptions] = None,
    ) -> Optional[str]:
        """Run one generation command; see `execute` for the return contract."""
        if not prompts or not prompts.strip():
            return self.text("help")

        try:
            await self._generate(session, prompts, options or GenerationOptions())
        except RrythError as err:
            return self.render_error(err)
        except Exception:
            logger.exception("Image command failed for %s", session.conversation_id)
            return self.text("unknown-error")
        return None

    async def _generate(self, session: Session, prompts: str, options: GenerationOptions) -> None:
        config = self.config

        compiled = compile_prompt(
            prompts,
            self.forbidden.rules,
            override=options.override,
            base_prompt=config.base_prompt,
            negative_prompt=config.negative_prompt,
            undesired=options.undesired,
        )

        prompt = compiled.prompt
        if config.translator:
            prompt = await translate_prompt(prompt, self.translator, config.translate_target)

        with self.registry.admitted(session.conversation_id, config.max_concurrency) as admission:
            image = None
            if compiled.image_url:
                image = await self.fetcher.fetch(compiled.image_url)
            request = build_request(compiled, options, config, image, prompt=prompt)

            if admission.pending:
                await session.channel.send(self.text("pending", admission.pending))
            else:
                await session.channel.send(self.text("waiting"))

            images = await self.client.generate(request)

        reply = assemble_reply(
            images[0],
            seed=request.seed,
            prompt=request.prompt,
            negative_prompt=request.negative_prompt,
            scale=request.cfg_scale,
            strength=request.denoising_strength,
            output=config.output,
            censor=config.censor,
            user_id=session.user_id,
            nickname=session.nickname,
            locale=config.locale,
        )
        message_ids = await session.channel.send(reply)
        schedule_recall(session.channel, session.channel_id, message_ids, config.recall_timeout)
