"""In-flight job bookkeeping for admission control.

Architectural role:
    Tracks which generation jobs are running per conversation and globally, so
    the orchestrator can enforce a per-conversation concurrency ceiling and tell
    users how many requests are ahead of them.

State model:
    - `per_conversation`: conversation id -> set of job ids.
    - `global_jobs`: set of every admitted job id.
    Every id in `global_jobs` is also in its conversation's set; both are
    inserted by `try_admit` and removed by `release` within one synchronous call.

Concurrency:
    Designed for a single asyncio event loop. No method awaits, so admission and
    release are atomic with respect to other coroutines and need no locks.

Lifetime:
    One registry per orchestrator; starts empty. Nothing is persisted across
    process restarts.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, NamedTuple

from rryth.core.errors import ConcurrentJobsExceeded


logger = logging.getLogger(__name__)


class Admission(NamedTuple):
    """Result of a successful admission.

    `pending` is the global job count read before this job was inserted, so it
    excludes the caller's own job.
    """

    job_id: str
    pending: int


class AdmissionRegistry:

    def __init__(self):
        self.per_conversation: dict[str, set[str]] = {}
        self.global_jobs: set[str] = set()

    def try_admit(self, conversation_id: str, max_concurrent: int | None) -> Admission:
        """Admit one job for `conversation_id`.

        Args:
            conversation_id: Owning conversation.
            max_concurrent: Per-conversation ceiling; `0`/`None` means unbounded.

        Returns:
            `Admission` with a fresh job id and the prior global count.

        Raises:
            ConcurrentJobsExceeded: The conversation is at its ceiling. Nothing
                is recorded in that case.
        """
        jobs = self.per_conversation.get(conversation_id, set())
        if max_concurrent and len(jobs) >= max_concurrent:
            raise ConcurrentJobsExceeded()

        pending = self.global_pending_count()
        job_id = uuid.uuid4().hex
        self.per_conversation.setdefault(conversation_id, set()).add(job_id)
        self.global_jobs.add(job_id)
        logger.debug("Admitted job %s for %s (%d pending)", job_id, conversation_id, pending)
        return Admission(job_id, pending)

    def release(self, conversation_id: str, job_id: str) -> None:
        """Remove a job from both sets. Unknown or already released ids are a no-op."""
        jobs = self.per_conversation.get(conversation_id)
        if jobs is not None:
            jobs.discard(job_id)
            if not jobs:
                del self.per_conversation[conversation_id]
        self.global_jobs.discard(job_id)

    def global_pending_count(self) -> int:
        return len(self.global_jobs)

    def conversation_count(self, conversation_id: str) -> int:
        return len(self.per_conversation.get(conversation_id, ()))

    @contextmanager
    def admitted(self, conversation_id: str, max_concurrent: int | None) -> Iterator[Admission]:
        """Admit a job for the duration of a `with` block, releasing on every exit path."""
        admission = self.try_admit(conversation_id, max_concurrent)
        try:
            yield admission
        finally:
            self.release(conversation_id, admission.job_id)
