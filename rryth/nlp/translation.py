"""Best-effort translation of CJK prompt fragments.

Processing flow:
    1. Find contiguous runs of CJK ideographs in the compiled prompt.
    2. Send all runs to the translator in one call, joined by `,`.
    3. Split the answer on commas and splice tokens back by position.

Failure model:
    Translation is advisory. A missing translator, a raised exception or a
    response whose token count does not match the number of runs all leave the
    prompt untouched. Failures are logged; logging is a side effect only and
    never a control-flow signal for the caller.
"""

import logging
import re
from typing import Optional, Protocol


logger = logging.getLogger(__name__)

CJK_RUN = re.compile(r"[一-龥]+")
_TOKEN_SEPARATOR = re.compile(r"\s*[,，]\s*")


class Translator(Protocol):
    """Minimal async interface for an external translation service."""

    async def translate(self, text: str, target: str) -> str:
        """Translate `text` into the `target` locale."""
        ...


def find_cjk_runs(prompt: str) -> list[str]:
    return CJK_RUN.findall(prompt)


def splice_translations(prompt: str, runs: list[str], tokens: list[str]) -> str:
    """Replace each run's next occurrence with its translated token, in order."""
    result = []
    rest = prompt
    for run, token in zip(runs, tokens):
        head, _, rest = rest.partition(run)
        result.append(head + token)
    result.append(rest)
    return "".join(result)


async def translate_prompt(
    prompt: str,
    translator: Optional[Translator],
    target: str = "en",
) -> str:
    """Translate CJK fragments of `prompt`, returning the original on any failure.

    Args:
        prompt: Compiled positive prompt string.
        translator: Translation collaborator, or `None` when not configured.
        target: Target locale passed to the translator.

    Returns:
        Prompt with translated fragments, or `prompt` unchanged.
    """
    runs = find_cjk_runs(prompt)
    if not runs:
        return prompt

    if translator is None:
        logger.debug("CJK prompt fragments left untranslated: no translator configured")
        return prompt

    try:
        answer = await translator.translate(",".join(runs), target)
    except Exception:
        logger.warning("Prompt translation failed", exc_info=True)
        return prompt

    if not isinstance(answer, str):
        logger.warning("Translator returned %s instead of text", type(answer).__name__)
        return prompt

    tokens = _TOKEN_SEPARATOR.split(answer.strip().lower())
    if len(tokens) != len(runs) or not all(tokens):
        logger.warning(
            "Translator returned %d token(s) for %d fragment(s); keeping original prompt",
            len(tokens),
            len(runs),
        )
        return prompt

    return splice_translations(prompt, runs, tokens)
