"""Chat-completions backed translator.

Architectural role:
    Default implementation of `rryth.nlp.translation.Translator` for hosts that
    do not inject their own translation service. Talks to any OpenAI-compatible
    `/chat/completions` endpoint.

Model call flow:
    text -> payload (system instruction + user text) -> POST -> first choice.

Retry behavior:
    None. Errors propagate to `translate_prompt`, which logs them and keeps the
    untranslated prompt.
"""

import logging
from typing import Optional

import httpx

from rryth.config import TRANSLATOR_KEY_FILE, TRANSLATOR_MODEL, TRANSLATOR_URL, load_key


logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You translate image-generation prompt fragments.\n"
    "Translate each comma-separated fragment into the target language.\n"
    "Reply with the translations only, in the same order, separated by commas.\n"
)


class ChatTranslator:

    def __init__(
        self,
        url: str = TRANSLATOR_URL,
        model: str = TRANSLATOR_MODEL,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(cls, timeout: float = 30.0) -> Optional["ChatTranslator"]:
        """Build a translator from provider settings, or `None` without a key."""
        api_key = load_key(TRANSLATOR_KEY_FILE)
        if not api_key:
            logger.info("No translator key configured; prompt translation disabled")
            return None
        return cls(api_key=api_key, timeout=timeout)

    async def translate(self, text: str, target: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE + f"Target language: {target}\n"},
                {"role": "user", "content": text},
            ],
            "temperature": 0,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()
        data = response.json()

        return data["choices"][0]["message"]["content"].strip()
