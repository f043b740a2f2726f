"""Prompt compilation from raw command text.

Processing flow:
    1. Extract at most one embedded image reference (`<image url=.../>` or
       `<img src=.../>`); every image tag is removed from the text.
    2. Normalize the remaining text (lower-case, full-width commas, whitespace).
    3. Split off an inline negative segment (`-u ...`, `--undesired ...`,
       `negative prompt: ...`) and merge the `undesired` option into it.
    4. Apply forbidden rules to user positive terms.
    5. Prepend configured default terms unless `override` is set.

Ordering guarantee:
    Defaults come first, then user terms in input order. Duplicates keep their
    first position.

Failure handling:
    Raises `EmptyPromptError` or `ForbiddenTermError`; never performs I/O.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable

from rryth.core.errors import EmptyPromptError, ForbiddenTermError
from rryth.safety.forbidden import ForbiddenRule, loose_hit, strict_hit


logger = logging.getLogger(__name__)

IMAGE_TAG = re.compile(
    r"<(?:image|img)\b[^>]*?\b(?:url|src)\s*=\s*([\"'])(?P<url>.*?)\1[^>]*?/?>(?:\s*</(?:image|img)>)?",
    re.IGNORECASE,
)
_NEGATIVE_DELIMITER = re.compile(
    r"(?:,\s*|\s+|^)(?:-u\s+|--undesired\s+|negative prompts?:\s*)(?P<negative>[\s\S]+)$"
)
_TERM_SEPARATOR = re.compile(r"\s*,\s*")


@dataclass(frozen=True)
class CompiledPrompt:
    positive_terms: tuple[str, ...]
    negative_terms: tuple[str, ...]
    image_url: str | None = None

    @property
    def prompt(self) -> str:
        return ", ".join(self.positive_terms)

    @property
    def negative_prompt(self) -> str:
        return ", ".join(self.negative_terms)


def extract_image(source: str) -> tuple[str, str | None]:
    """Strip image tags from `source` and return `(text, first_image_url)`."""
    match = IMAGE_TAG.search(source)
    url = match.group("url") if match else None
    return IMAGE_TAG.sub("", source), url


def normalize_text(source: str) -> str:
    source = source.replace("，", ",").lower()
    return re.sub(r"\s+", " ", source).strip()


def split_terms(source: str | None) -> list[str]:
    if not source:
        return []
    return [term for term in _TERM_SEPARATOR.split(normalize_text(source)) if term]


def _merge(*groups: Iterable[str]) -> tuple[str, ...]:
    merged: list[str] = []
    for group in groups:
        for term in group:
            if term not in merged:
                merged.append(term)
    return tuple(merged)


def compile_prompt(
    source: str,
    rules: Iterable[ForbiddenRule] = (),
    *,
    override: bool = False,
    base_prompt: str = "",
    negative_prompt: str = "",
    undesired: str | None = None,
) -> CompiledPrompt:
    """Compile raw command text into positive and negative term lists.

    Args:
        source: Raw prompt text, possibly containing one image tag.
        rules: Active forbidden rules.
        override: Skip configured default terms when set.
        base_prompt: Configured default positive terms (comma separated).
        negative_prompt: Configured default negative terms.
        undesired: Extra negative terms from the command option.

    Returns:
        Immutable `CompiledPrompt`.

    Raises:
        EmptyPromptError: No usable text and no default prompt, or every user
            term was stripped by loose rules with no defaults left.
        ForbiddenTermError: A strict rule matched a user positive term.
    """
    text, image_url = extract_image(source or "")
    if not text.strip() and not base_prompt:
        raise EmptyPromptError()

    text = normalize_text(text)
    negative = []
    capture = _NEGATIVE_DELIMITER.search(text)
    if capture:
        negative = split_terms(capture.group("negative"))
        text = text[:capture.start()]
    negative += split_terms(undesired)

    rules = tuple(rules)
    positive = []
    for term in split_terms(text):
        if strict_hit(rules, term):
            logger.info("Rejected prompt on strict forbidden term %r", term)
            raise ForbiddenTermError(term)
        if loose_hit(rules, term):
            logger.debug("Dropped forbidden term %r", term)
            continue
        positive.append(term)

    if override:
        positive_terms = _merge(positive)
        negative_terms = _merge(negative)
    else:
        positive_terms = _merge(split_terms(base_prompt), positive)
        negative_terms = _merge(split_terms(negative_prompt), negative)

    if not positive_terms:
        raise EmptyPromptError()

    return CompiledPrompt(positive_terms, negative_terms, image_url)
