"""Status enums for generation jobs.

GenerationStatus: Lifecycle of one image-generation job as reported by the backend.
"""

from __future__ import annotations

from enum import Enum


class GenerationStatus(str, Enum):
    """Lifecycle of an image-generation job.

    Jobs start PENDING, move to PROCESSING on the first progress event and end
    in COMPLETED or FAILED. terminal() returns the end states; progress events
    for terminal jobs are ignored by the client.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def terminal(cls) -> set[GenerationStatus]:
        """Return terminal states (no further progress)."""
        return {cls.COMPLETED, cls.FAILED}

    @classmethod
    def active(cls) -> set[GenerationStatus]:
        """Return states that still accept progress updates."""
        return {cls.PENDING, cls.PROCESSING}
