"""Core orchestration package.

Architectural role:
    Holds the only stateful part of the plugin (the admission registry) and the
    orchestrator that wires prompt compilation, translation, request building,
    generation and reply assembly together.

Composition:
    - `admission`: per-conversation and global in-flight job bookkeeping.
    - `engine`: command-level control flow and error-to-text conversion.
    - `errors`: typed failure taxonomy carrying locale keys.
    - `reply`: reply element model, output modes and recall scheduling.
"""
