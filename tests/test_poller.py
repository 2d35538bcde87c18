import threading

import pytest

from azure_service_lab.core.transport.errors import (
    OperationCanceled,
    OperationFailed,
    PollingAbandoned,
    TransientNetworkError,
)
from azure_service_lab.core.transport.poller import (
    Failed,
    LROPoller,
    OperationHandle,
    OperationState,
    StatusReport,
    Succeeded,
    arm_state,
    parse_retry_after,
)

HANDLE = OperationHandle("https://management.azure.com/ops/1")


class ScriptedStatus:
    """Status fetcher replaying a fixed list of reports (or exceptions)."""

    def __init__(self, *reports):
        self.reports = list(reports)
        self.calls = 0

    def __call__(self, handle):
        self.calls += 1
        item = self.reports.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def running(retry_after=None):
    return StatusReport(OperationState.POLLING, retry_after=retry_after)


def test_polls_until_succeeded_and_returns_the_payload():
    fetch = ScriptedStatus(running(), running(), StatusReport(OperationState.SUCCEEDED, payload={"id": "x"}))
    sleeps = []
    poller = LROPoller(fetch, HANDLE, interval=5, sleep=sleeps.append)

    assert poller.result() == {"id": "x"}
    assert fetch.calls == 3
    assert poller.poll_count == 3
    assert sleeps == [5, 5]
    assert poller.status() is OperationState.SUCCEEDED


def test_immediate_failure_is_reported_after_one_query():
    fetch = ScriptedStatus(StatusReport(OperationState.FAILED, detail="quota exceeded"))
    sleeps = []
    poller = LROPoller(fetch, HANDLE, interval=5, sleep=sleeps.append)

    with pytest.raises(OperationFailed) as excinfo:
        poller.result()

    assert excinfo.value.detail == "quota exceeded"
    assert fetch.calls == 1
    assert sleeps == []
    assert poller.outcome == Failed("quota exceeded")


def test_terminal_state_is_cached_and_never_queried_again():
    fetch = ScriptedStatus(StatusReport(OperationState.SUCCEEDED, payload={"id": "x"}))
    poller = LROPoller(fetch, HANDLE, interval=5, sleep=lambda s: None)

    first = poller.wait()
    assert poller.poll_once() is OperationState.SUCCEEDED
    assert poller.wait() is first
    assert poller.result() == {"id": "x"}
    assert fetch.calls == 1
    assert first == Succeeded({"id": "x"})


def test_state_starts_submitted():
    poller = LROPoller(ScriptedStatus(), HANDLE)
    assert poller.status() is OperationState.SUBMITTED
    assert not poller.done()


def test_canceled_operation_raises_operation_canceled():
    fetch = ScriptedStatus(StatusReport(OperationState.CANCELED, detail="canceled by user"))
    poller = LROPoller(fetch, HANDLE, interval=1, sleep=lambda s: None)

    with pytest.raises(OperationCanceled):
        poller.result()


def test_server_retry_after_overrides_the_interval():
    fetch = ScriptedStatus(running(retry_after=2), StatusReport(OperationState.SUCCEEDED))
    sleeps = []
    handle = OperationHandle("https://management.azure.com/ops/1", retry_after=9)

    LROPoller(fetch, handle, interval=30, sleep=sleeps.append).result()

    assert sleeps == [9, 2]


def test_transient_status_failure_is_retried():
    fetch = ScriptedStatus(TransientNetworkError("reset by peer"), StatusReport(OperationState.SUCCEEDED, payload=1))
    sleeps = []
    poller = LROPoller(fetch, HANDLE, interval=5, sleep=sleeps.append, transient_retries=2)

    assert poller.result() == 1
    assert poller.poll_count == 2
    assert len(sleeps) == 1


def test_transient_failures_propagate_once_retries_are_spent():
    fetch = ScriptedStatus(*[TransientNetworkError("down")] * 3)
    poller = LROPoller(fetch, HANDLE, interval=5, sleep=lambda s: None, transient_retries=2)

    with pytest.raises(TransientNetworkError):
        poller.result()
    assert fetch.calls == 3


def test_cancel_event_abandons_waiting_without_querying():
    fetch = ScriptedStatus(running())
    event = threading.Event()
    event.set()
    poller = LROPoller(fetch, HANDLE, interval=5, cancel_event=event)

    with pytest.raises(PollingAbandoned):
        poller.wait()
    assert fetch.calls == 0


def test_deadline_abandons_waiting():
    fetch = ScriptedStatus(running(), running())
    poller = LROPoller(fetch, HANDLE, interval=5, sleep=lambda s: None, deadline=100.0, clock=lambda: 150.0)

    with pytest.raises(PollingAbandoned):
        poller.wait()


def test_negative_interval_is_rejected():
    with pytest.raises(ValueError):
        LROPoller(ScriptedStatus(), HANDLE, interval=-1)


@pytest.mark.parametrize("raw,state", [
    ("Succeeded", OperationState.SUCCEEDED),
    ("failed", OperationState.FAILED),
    ("Canceled", OperationState.CANCELED),
    ("Cancelled", OperationState.CANCELED),
    ("InProgress", OperationState.POLLING),
    (None, OperationState.POLLING),
])
def test_arm_state_mapping(raw, state):
    assert arm_state(raw) is state


def test_parse_retry_after():
    assert parse_retry_after({"retry-after": "15"}) == 15.0
    assert parse_retry_after({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}) is None
    assert parse_retry_after({}) is None
