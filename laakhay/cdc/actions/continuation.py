"""Outcome returned by actions that end the current unit of work."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessContinuation:
    """Tells the caller how to proceed after an action stops processing.

    Actions return None to let the reader continue with the next record or
    phase. A continuation either stops the partition (its claim was
    rejected or the partition is done) or asks for the residual restriction
    to be resumed after ``resume_delay`` seconds.
    """

    should_resume: bool
    resume_delay: float | None = None

    @classmethod
    def stop(cls) -> ProcessContinuation:
        return cls(should_resume=False)

    @classmethod
    def resume(cls, delay: float | None = None) -> ProcessContinuation:
        if delay is not None and delay < 0:
            raise ValueError("resume delay cannot be negative")
        return cls(should_resume=True, resume_delay=delay)
