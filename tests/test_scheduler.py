import asyncio
import logging

import pytest

from sanic.log import logger as sanic_logger

from review_sentinel.github import ReviewTrigger
from review_sentinel.scheduler import ReviewStatusScheduler


def _trigger(delivery_id: str, number: int = 42, event: str = "pull_request_review"):
    return ReviewTrigger(
        repo_full_name="org/repo",
        pr_number=number,
        installation_id=111,
        event=event,
        delivery_id=delivery_id,
    )


@pytest.mark.asyncio
async def test_scheduler_coalesces_multiple_triggers_for_same_pr():
    seen = []

    async def handler(trigger: ReviewTrigger):
        seen.append(trigger.delivery_id)

    scheduler = ReviewStatusScheduler(debounce_seconds=0.02, handler=handler)

    await scheduler.enqueue(_trigger("d1"))
    await scheduler.enqueue(_trigger("d2", event="pull_request"))
    await scheduler.enqueue(_trigger("d3"))

    await asyncio.sleep(0.08)
    await scheduler.shutdown()

    assert seen == ["d3"]


@pytest.mark.asyncio
async def test_scheduler_keeps_prs_apart():
    seen = []

    async def handler(trigger: ReviewTrigger):
        seen.append(trigger.pr_number)

    scheduler = ReviewStatusScheduler(debounce_seconds=0.0, handler=handler)

    await scheduler.enqueue(_trigger("d1", number=1))
    await scheduler.enqueue(_trigger("d2", number=2))

    await asyncio.sleep(0.05)
    await scheduler.shutdown()

    assert sorted(seen) == [1, 2]
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_scheduler_reruns_once_for_trigger_during_execution():
    seen = []
    started = asyncio.Event()
    release = asyncio.Event()

    async def handler(trigger: ReviewTrigger):
        seen.append(trigger.delivery_id)
        if trigger.delivery_id == "d1":
            started.set()
            await release.wait()

    scheduler = ReviewStatusScheduler(debounce_seconds=0.0, handler=handler)

    await scheduler.enqueue(_trigger("d1"))
    await asyncio.wait_for(started.wait(), timeout=1)

    await scheduler.enqueue(_trigger("d2"))
    await scheduler.enqueue(_trigger("d3"))
    release.set()

    await asyncio.sleep(0.05)
    await scheduler.shutdown()

    assert seen == ["d1", "d3"]


@pytest.mark.asyncio
async def test_scheduler_logs_superseded_review(caplog):
    seen = []

    async def handler(trigger: ReviewTrigger):
        seen.append((trigger.event, trigger.delivery_id))

    scheduler = ReviewStatusScheduler(debounce_seconds=0.02, handler=handler)

    sanic_logger.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.INFO, logger="sanic.root"):
            await scheduler.enqueue(_trigger("d1"))
            await scheduler.enqueue(_trigger("d2", event="pull_request"))

            await asyncio.sleep(0.08)
            await scheduler.shutdown()
    finally:
        sanic_logger.removeHandler(caplog.handler)

    assert seen == [("pull_request", "d2")]
    messages = [r.getMessage() for r in caplog.records]
    assert any(
        "pull_request_review/None (delivery d1) superseded by pull_request/None" in m
        for m in messages
    )
    assert any("coalesced pull_request_review/None" in m for m in messages)
    assert scheduler.pending == 0
