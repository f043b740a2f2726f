"""rryth: chat-command front end for a remote Stable Diffusion backend.

Architectural role:
    Turns a free-form chat command into a validated generation request, applies
    per-conversation admission control, dispatches the request to the backend
    and assembles a multi-part reply for the chat host.

Package layout:
    - `prompting`: prompt compilation from raw command text.
    - `safety`: forbidden-term rule parsing and matching.
    - `nlp`: best-effort CJK prompt translation.
    - `image`: image download, request construction and backend client.
    - `core`: admission registry, reply assembly, errors and orchestration.
    - `llm`: default chat-completions translator.
    - `api`: command parsing plus CLI and HTTP adapters.
"""

__version__ = "0.3.0"
