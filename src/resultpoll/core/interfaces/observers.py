"""Observer protocol for result view transitions.

Consumers (a UI layer, the CLI, tests) subscribe to a ResultSession and
are told when something worth rendering happened. Loading states are not
announced; the session's `view` always holds the current state.
"""

from typing import Protocol

from resultpoll.core.models.view import ResultView


class ResultObserver(Protocol):
    """Observer protocol for a job's result view.

    - on_stage_resolved: a partial or complete result became available
      (primary poll, advice chase, or cache hit)
    - on_advice_unavailable: the advice chase gave up; the partial result stays
    - on_failed: the primary poll failed; `view.error` holds the message
    """

    async def on_stage_resolved(self, view: ResultView) -> None:
        ...

    async def on_advice_unavailable(self, view: ResultView) -> None:
        ...

    async def on_failed(self, view: ResultView) -> None:
        ...
