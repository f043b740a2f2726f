"""Command-line grammar for the `rryth` chat command.

Syntax:
    rryth <prompts...> [-r WIDTHxHEIGHT] [-O] [-x SEED] [-c SCALE] [-N STRENGTH]
          [-u UNDESIRED]

Aliases `sai` and `rr` are accepted as the command word. Options may appear
anywhere; long forms (`--resolution 512x768`, `--seed=7`) are accepted too.

Prompt text:
    Only recognized option tokens and their values are consumed. Every other
    whitespace-separated token is kept verbatim, including apostrophes,
    backslash escapes such as `\\(cat\\)` and dash-prefixed terms like `-sky`.
    An option value may be quoted (`-u "bad hands, blurry"`); only such a
    value is unquoted.

Input validation:
    A missing or malformed option value fails here, before the core runs, with
    `CommandSyntaxError` (locale key `invalid-resolution` for `-r`).
"""

import re

from rryth.core.errors import CommandSyntaxError
from rryth.image.request_builder import GenerationOptions, parse_resolution
from rryth.prompting.compiler import IMAGE_TAG

COMMAND_NAME = "rryth"
COMMAND_ALIASES = ("sai", "rr")

# option token -> (field, converter); converter None marks a boolean flag
OPTIONS = {
    "-r": ("resolution", parse_resolution),
    "--resolution": ("resolution", parse_resolution),
    "-O": ("override", None),
    "--override": ("override", None),
    "-x": ("seed", int),
    "--seed": ("seed", int),
    "-c": ("scale", float),
    "--scale": ("scale", float),
    "-N": ("strength", float),
    "--strength": ("strength", float),
    "-u": ("undesired", str),
    "--undesired": ("undesired", str),
}

_TOKEN = re.compile(r"\S+")


def _syntax_error(field: str, value: str) -> CommandSyntaxError:
    if field == "resolution":
        return CommandSyntaxError(value, locale_key="invalid-resolution")
    return CommandSyntaxError(value)


def _read_value(source: str, match: re.Match, field: str) -> tuple[str, int]:
    """Read the option value starting at `match`; return `(value, end_offset)`."""
    token = match.group(0)
    quote = token[0]
    if quote not in ("'", '"'):
        return token, match.end()

    closing = re.compile(re.escape(quote) + r"(?=\s|$)")
    end = closing.search(source, match.start() + 1)
    if end is None:
        raise _syntax_error(field, token)
    return source[match.start() + 1:end.start()], end.end()


def parse_command(source: str) -> tuple[str, GenerationOptions]:
    """Split a command line into prompt text and `GenerationOptions`.

    The leading command word (`rryth`, `sai`, `rr`, optionally prefixed with
    `/`) is stripped when present. Embedded image tags are kept in front of
    the prompt text.

    Raises:
        CommandSyntaxError: An option is missing its value or the value does
            not convert.
    """
    tags = [match.group(0) for match in IMAGE_TAG.finditer(source)]
    source = IMAGE_TAG.sub(" ", source)

    values = {}
    prompt_tokens = []
    position = 0
    first = True
    while True:
        match = _TOKEN.search(source, position)
        if match is None:
            break
        token = match.group(0)
        position = match.end()

        if first:
            first = False
            if token.lstrip("/") in (COMMAND_NAME, *COMMAND_ALIASES):
                continue

        name, _, inline = token.partition("=")
        if name not in OPTIONS or (inline and not name.startswith("--")):
            prompt_tokens.append(token)
            continue

        field, convert = OPTIONS[name]
        if convert is None:
            values[field] = True
            continue

        if inline:
            raw = inline
        else:
            value = _TOKEN.search(source, position)
            if value is None:
                raise _syntax_error(field, token)
            raw, position = _read_value(source, value, field)

        try:
            values[field] = convert(raw)
        except ValueError as exc:
            raise _syntax_error(field, raw) from exc

    return " ".join(tags + prompt_tokens), GenerationOptions(**values)
