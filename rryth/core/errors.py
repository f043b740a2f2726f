"""Typed failure taxonomy for the image command pipeline.

Architectural role:
    Every failure the pipeline can report to a user is one of the classes below.
    Each carries a locale key (see `rryth.locales`) and positional params, so the
    command boundary can render a localized message without inspecting transport
    details.

Propagation policy:
    - Raised by the component that detects the failure.
    - Caught once, in `rryth.core.engine.ImageOrchestrator.execute`.
    - Never retried automatically.
"""


class RrythError(Exception):
    """Base class for user-reportable pipeline failures."""

    locale_key = "unknown-error"

    def __init__(self, *params, locale_key: str | None = None):
        if locale_key is not None:
            self.locale_key = locale_key
        self.params = params
        super().__init__(self.locale_key, *params)


class CommandSyntaxError(RrythError, ValueError):
    """Command text could not be parsed (bad option value, unknown flag)."""

    locale_key = "invalid-input"


class EmptyPromptError(RrythError):
    locale_key = "expect-prompt"


class ForbiddenTermError(RrythError):
    """A strict forbidden rule matched a positive term.

    `term` is kept for logging only; the user-facing message never echoes it.
    """

    locale_key = "forbidden-word"

    def __init__(self, term: str):
        super().__init__()
        self.term = term


class NetworkError(RrythError):
    """Source image could not be downloaded or decoded."""

    locale_key = "download-error"


class ConcurrentJobsExceeded(RrythError):
    locale_key = "concurrent-jobs"


class GenerationError(RrythError):
    """Base class for backend call failures classified by the generation client."""


class BackendMessageError(GenerationError):
    """Backend returned a structured error body; its message is shown verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnauthorizedError(GenerationError):
    locale_key = "unauthorized"


class BackendStatusError(GenerationError):
    locale_key = "response-error"

    def __init__(self, status_code: int):
        super().__init__(status_code)
        self.status_code = status_code


class RequestTimeoutError(GenerationError):
    locale_key = "request-timeout"


class TransportError(GenerationError):
    locale_key = "request-failed"

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


class UnknownError(GenerationError):
    locale_key = "unknown-error"
