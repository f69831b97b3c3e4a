"""
Append-only stream of partial run output.

Observers (the realtime transcript mirror, the stream replay endpoint)
read AIStreamEvent rows of a run in seq order. The final assistant
message stays authoritative; events only show progress.
"""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

from ai.models import AIStreamEvent

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from ai.models import AIRun


class StreamSink:
    """Write and read a run's stream events."""

    @staticmethod
    def append(thread_id: UUID, run_id: UUID, seq: int, delta: str) -> AIStreamEvent:
        """
        Append one event.

        No deduplication: callers own seq monotonicity. A duplicate seq
        for the same run violates the (run, seq) constraint.
        """
        return AIStreamEvent.objects.create(
            thread_id=thread_id,
            run_id=run_id,
            seq=seq,
            delta=delta,
        )

    @classmethod
    def writer(cls, run: AIRun) -> Callable[[str], None]:
        """
        Return a delta callback for a run.

        The callback numbers events with a counter scoped to the run,
        starting at 0.
        """
        counter = itertools.count()

        def write(delta: str) -> None:
            cls.append(run.thread_id, run.id, next(counter), delta)

        return write

    @staticmethod
    def events(run: AIRun, after_seq: int | None = None):
        queryset = AIStreamEvent.objects.filter(run=run).order_by("seq")
        if after_seq is not None:
            queryset = queryset.filter(seq__gt=after_seq)
        return queryset

    @classmethod
    def replay(cls, run: AIRun, after_seq: int | None = None) -> str:
        """Concatenate a run's deltas in seq order."""
        return "".join(cls.events(run, after_seq).values_list("delta", flat=True))
