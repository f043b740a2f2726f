"""Plugin and provider configuration.

Architectural role:
    Centralizes every tunable consumed by `rryth.core.engine` and the adapters it
    wires together (backend endpoint, admission ceiling, defaults for generation
    parameters, output verbosity, translator credentials).

Sources:
    - `PluginConfig(...)` with keyword arguments (host-provided config; the
      camelCase aliases such as `maxConcurrency`, `weigh`, `hight` are accepted).
    - `PluginConfig.from_env()` reading `RRYTH_*` variables after `load_dotenv()`.

Reload model:
    `PluginConfig` is frozen. A configuration change produces a new instance which
    is handed to `ImageOrchestrator.reload`; nothing mutates a live config.

Determinism:
    Deterministic for a fixed process environment and key files.
"""

import json
import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()

DEFAULT_ENDPOINT = "https://api.draw.t4wefan.pub/"

# Translator provider settings consumed by `rryth.llm.translator`.
TRANSLATOR_URL = os.getenv("TRANSLATOR_URL", "https://api.openai.com/v1/chat/completions")
TRANSLATOR_MODEL = os.getenv("TRANSLATOR_MODEL", "gpt-4o-mini")
TRANSLATOR_KEY_FILE = os.getenv("TRANSLATOR_KEY_FILE", "config/translator.key")


OutputMode = Literal["minimal", "normal", "verbose"]


class PluginConfig(BaseModel):
    """Validated plugin configuration.

    Durations (`request_timeout`, `recall_timeout`) are seconds. A zero
    `max_concurrency` disables the per-conversation ceiling; a zero
    `recall_timeout` disables auto-recall.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    endpoint: str = DEFAULT_ENDPOINT
    forbidden: str = ""
    max_concurrency: int = Field(0, alias="maxConcurrency", ge=0)
    request_timeout: float = Field(30.0, alias="requestTimeout", gt=0)
    headers: dict[str, str] = Field(default_factory=dict)

    scale: Optional[float] = 11
    strength: Optional[float] = Field(0.3, ge=0, le=1)
    width: int = Field(512, alias="weigh", gt=0)
    height: int = Field(512, alias="hight", gt=0)

    translator: bool = True
    translate_target: str = Field("en", alias="translateTarget")
    censor: bool = False
    output: OutputMode = "normal"
    recall_timeout: float = Field(0, alias="recallTimeout", ge=0)

    base_prompt: str = Field("", alias="basePrompt")
    negative_prompt: str = Field("", alias="negativePrompt")

    locale: str = "zh"
    max_image_bytes: int = Field(10 * 1024 * 1024, alias="maxImageBytes", gt=0)

    @classmethod
    def from_env(cls, prefix: str = "RRYTH_") -> "PluginConfig":
        """Build a config from environment variables.

        Each field is read from `<prefix><FIELD_NAME>` (upper-case field name,
        for example `RRYTH_MAX_CONCURRENCY`). `RRYTH_HEADERS` is a JSON object.
        Unset variables keep the model defaults; values are validated by pydantic.
        """
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(prefix + name.upper())
            if raw is None:
                continue
            if name == "headers":
                try:
                    raw = json.loads(raw)
                except ValueError as exc:
                    raise ValueError(f"{prefix}HEADERS must be a JSON object: {exc}") from exc
            values[name] = raw
        return cls.model_validate(values)


def load_key(path):
    """Load an API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/translator.key` -> `TRANSLATOR_API_KEY`).
        2. Raw file contents at `path`.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip()
