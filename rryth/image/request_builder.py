"""Prompt-to-payload mapping for the generation backend.

Resolution policy:
    - Image-to-image: size from the source image unless a resolution option is
      given; denoising strength from option, config, then `DEFAULT_STRENGTH`;
      `IMG2IMG_STEPS` sampling steps; the image is sent as `init_images`.
    - Text-to-image: size from config unless overridden; `TXT2IMG_STEPS`; no
      `init_images`/`denoising_strength` fields at all.
    - Seed: option value or a uniformly random unsigned 32-bit integer.
    - CFG scale: option value, config value, then `DEFAULT_SCALE`.

Determinism:
    Deterministic for fixed inputs except for the random seed fallback.
    No network access or shared state.
"""

import random
import re
from dataclasses import dataclass
from typing import Any, Optional

from rryth.config import PluginConfig
from rryth.image.fetch import ImageData
from rryth.prompting.compiler import CompiledPrompt

TXT2IMG_STEPS = 28
IMG2IMG_STEPS = 50
DEFAULT_SCALE = 11
DEFAULT_STRENGTH = 0.3
SEED_RANGE = 2 ** 32

_RESOLUTION = re.compile(r"^(\d*\.?\d+)[x×](\d*\.?\d+)$")


@dataclass(frozen=True)
class Resolution:
    width: int
    height: int


def parse_resolution(source: str) -> Resolution:
    """Parse `WIDTHxHEIGHT` (also `×`) into a `Resolution`.

    Raises:
        ValueError: Malformed text or non-positive dimensions.
    """
    match = _RESOLUTION.match(source.strip().lower())
    if not match:
        raise ValueError(f"invalid resolution: {source!r}")
    width, height = (int(float(value)) for value in match.groups())
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid resolution: {source!r}")
    return Resolution(width, height)


@dataclass(frozen=True)
class GenerationOptions:
    """User-supplied overrides parsed from the command line."""

    resolution: Optional[Resolution] = None
    override: bool = False
    seed: Optional[int] = None
    scale: Optional[float] = None
    strength: Optional[float] = None
    undesired: Optional[str] = None


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    negative_prompt: str
    seed: int
    cfg_scale: float
    width: int
    height: int
    steps: int
    init_image: Optional[str] = None
    denoising_strength: Optional[float] = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the backend JSON body; absent optional fields are omitted."""
        payload: dict[str, Any] = {
            "prompt": self.prompt,
            "negative_prompt": self.negative_prompt,
            "seed": self.seed,
            "cfg_scale": self.cfg_scale,
            "width": self.width,
            "height": self.height,
            "steps": self.steps,
        }
        if self.init_image is not None:
            payload["init_images"] = [self.init_image]
        if self.denoising_strength is not None:
            payload["denoising_strength"] = self.denoising_strength
        return payload


def random_seed() -> int:
    return random.randrange(SEED_RANGE)


def build_request(
    compiled: CompiledPrompt,
    options: GenerationOptions,
    config: PluginConfig,
    image: Optional[ImageData] = None,
    prompt: Optional[str] = None,
) -> GenerationRequest:
    """Map a compiled prompt and resolved options to a `GenerationRequest`.

    Args:
        compiled: Compiled prompt terms.
        options: Command overrides.
        config: Active plugin configuration.
        image: Downloaded source image for image-to-image, or `None`.
        prompt: Final positive prompt (for example after translation); defaults
            to `compiled.prompt`.
    """
    seed = options.seed if options.seed is not None else random_seed()
    if options.scale is not None:
        scale = options.scale
    elif config.scale is not None:
        scale = config.scale
    else:
        scale = DEFAULT_SCALE

    common = dict(
        prompt=compiled.prompt if prompt is None else prompt,
        negative_prompt=compiled.negative_prompt,
        seed=seed,
        cfg_scale=scale,
    )

    if image is None:
        size = options.resolution or Resolution(config.width, config.height)
        return GenerationRequest(
            width=size.width,
            height=size.height,
            steps=TXT2IMG_STEPS,
            **common,
        )

    size = options.resolution or Resolution(image.width, image.height)
    if options.strength is not None:
        strength = options.strength
    elif config.strength is not None:
        strength = config.strength
    else:
        strength = DEFAULT_STRENGTH

    return GenerationRequest(
        width=size.width,
        height=size.height,
        steps=IMG2IMG_STEPS,
        init_image=image.data_url,
        denoising_strength=strength,
        **common,
    )
