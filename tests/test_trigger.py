from types import SimpleNamespace

import pytest

from review_sentinel.exceptions import UnsupportedTrigger
from review_sentinel.github import create_router, trigger_from_event


def _payload(action: str) -> dict:
    return {
        "action": action,
        "installation": {"id": 99},
        "repository": {"id": 11, "full_name": "org/repo"},
        "pull_request": {"id": 5001, "number": 42},
    }


def test_pull_request_trigger():
    trigger = trigger_from_event("pull_request", _payload("synchronize"), "d-1")
    assert trigger.repo_full_name == "org/repo"
    assert trigger.pr_number == 42
    assert trigger.installation_id == 99
    assert trigger.delivery_id == "d-1"
    assert trigger.key == "org/repo#42"
    assert trigger.repo_url == "/repos/org/repo"


def test_review_trigger():
    trigger = trigger_from_event("pull_request_review", _payload("submitted"))
    assert trigger.event == "pull_request_review"
    assert trigger.action == "submitted"


def test_trigger_without_installation():
    payload = _payload("opened")
    del payload["installation"]
    assert trigger_from_event("pull_request", payload).installation_id is None


@pytest.mark.parametrize(
    "event,action",
    [
        ("push", None),
        ("check_run", "completed"),
        ("pull_request", "closed"),
        ("pull_request_review", "requested"),
    ],
)
def test_unsupported_trigger(event, action):
    with pytest.raises(UnsupportedTrigger) as excinfo:
        trigger_from_event(event, {"action": action})
    assert excinfo.value.event == event


class _Scheduler:
    def __init__(self):
        self.enqueued = []

    async def enqueue(self, trigger):
        self.enqueued.append(trigger)


@pytest.mark.asyncio
async def test_router_enqueues_supported_events():
    router = create_router()
    scheduler = _Scheduler()

    await router.dispatch(
        SimpleNamespace(event="pull_request", data=_payload("opened")),
        scheduler,
        delivery_id="d-1",
    )
    await router.dispatch(
        SimpleNamespace(event="pull_request_review", data=_payload("dismissed")),
        scheduler,
        delivery_id="d-2",
    )

    assert [t.delivery_id for t in scheduler.enqueued] == ["d-1", "d-2"]


@pytest.mark.asyncio
async def test_router_skips_unsupported_actions():
    router = create_router()
    scheduler = _Scheduler()

    await router.dispatch(
        SimpleNamespace(event="pull_request", data=_payload("closed")),
        scheduler,
    )
    await router.dispatch(
        SimpleNamespace(event="issues", data={"action": "opened"}),
        scheduler,
    )

    assert scheduler.enqueued == []


@pytest.mark.parametrize("action", ["labeled", "assigned", "converted_to_draft", "closed"])
def test_any_action_accepts_other_pr_activity(action):
    with pytest.raises(UnsupportedTrigger):
        trigger_from_event("pull_request", _payload(action))

    trigger = trigger_from_event("pull_request", _payload(action), any_action=True)
    assert trigger.action == action
    assert trigger.key == "org/repo#42"


def test_any_action_still_requires_pr_event():
    with pytest.raises(UnsupportedTrigger):
        trigger_from_event("push", {"action": None}, any_action=True)
