from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List

from sanic.log import logger

from review_sentinel.github import ReviewTrigger
from review_sentinel.metric import scheduler_debounce_total


def _describe(trigger: ReviewTrigger) -> str:
    return f"{trigger.event}/{trigger.action}"


@dataclass
class _PendingRun:
    trigger: ReviewTrigger
    due: float
    # events folded into this run since it was last executed
    coalesced: List[str] = field(default_factory=list)
    running: bool = False
    rerun: bool = False


class ReviewStatusScheduler:
    """
    Recomputes the review status of a PR once per burst of events.

    A review often arrives together with ``pull_request`` events for the same
    PR. Each trigger pushes the PR's run back by ``debounce_seconds`` and
    replaces the trigger it will be run with; all of them lead to the same
    recomputation. A trigger arriving while the run executes schedules exactly
    one more run. Everything happens on one event loop, so the bookkeeping
    needs no lock.
    """

    def __init__(
        self,
        *,
        debounce_seconds: float,
        handler: Callable[[ReviewTrigger], Awaitable[None]],
    ):
        self.debounce_seconds = max(0.0, float(debounce_seconds))
        self.handler = handler
        self._runs: Dict[str, _PendingRun] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        return len(self._runs)

    async def enqueue(self, trigger: ReviewTrigger) -> None:
        due = asyncio.get_running_loop().time() + self.debounce_seconds

        run = self._runs.get(trigger.key)
        if run is None:
            self._runs[trigger.key] = _PendingRun(trigger=trigger, due=due)
            self._workers[trigger.key] = asyncio.create_task(self._work(trigger.key))
            scheduler_debounce_total.labels(result="scheduled").inc()
            logger.debug("Scheduled %s for %s", trigger.key, _describe(trigger))
            return

        previous = run.trigger
        if previous.event == "pull_request_review" and trigger.event != previous.event:
            logger.info(
                "%s: %s (delivery %s) superseded by %s (delivery %s)",
                trigger.key,
                _describe(previous),
                previous.delivery_id,
                _describe(trigger),
                trigger.delivery_id,
            )
        run.coalesced.append(_describe(previous))
        run.trigger = trigger
        run.due = max(run.due, due)
        if run.running:
            run.rerun = True
        scheduler_debounce_total.labels(result="coalesced").inc()

    async def shutdown(self) -> None:
        workers = list(self._workers.values())
        self._workers.clear()
        self._runs.clear()

        for worker in workers:
            worker.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)

    async def _work(self, key: str) -> None:
        loop = asyncio.get_running_loop()
        run = self._runs[key]
        try:
            while True:
                wait = run.due - loop.time()
                if wait > 0:
                    await asyncio.sleep(wait)
                    continue

                trigger = run.trigger
                if run.coalesced:
                    logger.info(
                        "%s: running for %s, coalesced %s",
                        key,
                        _describe(trigger),
                        ", ".join(run.coalesced),
                    )
                    run.coalesced = []

                run.running = True
                run.rerun = False
                scheduler_debounce_total.labels(result="executed").inc()
                try:
                    await self.handler(trigger)
                finally:
                    run.running = False

                if not run.rerun:
                    return
        finally:
            if self._workers.get(key) is asyncio.current_task():
                del self._workers[key]
                del self._runs[key]
