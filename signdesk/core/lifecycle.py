"""Decision rules for a single document's analysis lifecycle.

The lifecycle is ``none -> pending -> processing -> completed | failed``.
:func:`next_action` is pure: it looks at the previously known status and a
freshly observed record and tells the caller what to do with it. Timer and
I/O ownership stays with :class:`signdesk.core.polling.PollSupervisor`.
"""
from __future__ import annotations

from dataclasses import dataclass

from signdesk.domain import AnalysisOutcome, AnalysisRecord, AnalysisStatus


@dataclass(frozen=True, slots=True)
class LifecycleDecision:
    store: bool = False
    clear: bool = False
    schedule_next_poll: bool = False
    stop: bool = True
    outcome: AnalysisOutcome | None = None


def next_action(previous: AnalysisStatus | None, observed: AnalysisRecord | None) -> LifecycleDecision:
    """Decide how to apply ``observed`` given the last known status."""

    if previous is None:
        previous = AnalysisStatus.NONE

    if observed is None or observed.status is AnalysisStatus.NONE:
        # the analysis does not exist (any more); nothing left to poll
        return LifecycleDecision(clear=previous is not AnalysisStatus.NONE)

    if previous.is_terminal:
        return LifecycleDecision()

    if observed.status.rank < previous.rank:
        return LifecycleDecision(schedule_next_poll=previous.is_active, stop=not previous.is_active)

    if observed.status is AnalysisStatus.COMPLETED:
        return LifecycleDecision(store=True, outcome=AnalysisOutcome.SUCCEEDED)
    if observed.status is AnalysisStatus.FAILED:
        return LifecycleDecision(store=True, outcome=AnalysisOutcome.FAILED)

    return LifecycleDecision(store=True, schedule_next_poll=True, stop=False)


__all__ = ["LifecycleDecision", "next_action"]
