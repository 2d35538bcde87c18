# -*- coding: utf-8 -*-

"""
Long-running operation polling.

A "begin" call (PUT/DELETE/POST against the control plane) returns an
``OperationHandle``. ``LROPoller`` drives the handle through an explicit
state machine until the server reports a terminal state:

    SUBMITTED -> POLLING -> SUCCEEDED | FAILED | CANCELED

Status queries for one handle are strictly sequential. Once terminal, the
result is cached and never queried again.
"""

import time
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import OperationCanceled, OperationFailed, PollingAbandoned, TransientNetworkError

DEFAULT_POLL_INTERVAL = 30.0


class OperationState(Enum):
    SUBMITTED = "Submitted"
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.SUCCEEDED, OperationState.FAILED, OperationState.CANCELED)


#=============================================================================
# Operation Data Model
#=============================================================================

@dataclass(frozen=True)
class Succeeded:
    payload: Any = None


@dataclass(frozen=True)
class Failed:
    detail: Any = None


@dataclass(frozen=True)
class Canceled:
    detail: Any = None


OperationResult = Succeeded | Failed | Canceled


@dataclass(frozen=True)
class OperationHandle:
    """
    Poll target of an in-flight server-side operation.

    Attributes:
        poll_url: URL queried for status. None when the begin call already
            completed the operation (mode "done").
        final_url: Resource fetched once the operation succeeds, if any.
        retry_after: Server-suggested seconds before the first status query.
        mode: "async" (Azure-AsyncOperation body with ``status``), "location"
            (202 while running), "resource" (``properties.provisioningState``
            on the resource itself) or "done".
        initial_payload: Decoded body of the begin response.
    """

    poll_url: str | None
    final_url: str | None = None
    retry_after: float | None = None
    mode: str = "async"
    initial_payload: Any = None


@dataclass(frozen=True)
class StatusReport:
    state: OperationState
    payload: Any = None
    detail: Any = None
    retry_after: float | None = None


def parse_retry_after(headers) -> float | None:
    """Read a numeric Retry-After header (seconds). HTTP-date values are ignored."""
    value = None
    for name, raw in (headers or {}).items():
        if name.lower() == "retry-after":
            value = raw
            break
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def arm_state(raw_status) -> OperationState:
    """Map an ARM status / provisioningState string to an OperationState."""
    status = (raw_status or "").strip().lower()
    if status == "succeeded":
        return OperationState.SUCCEEDED
    if status == "failed":
        return OperationState.FAILED
    if status in ("canceled", "cancelled"):
        return OperationState.CANCELED
    return OperationState.POLLING


def _error_detail(body, raw_status=None):
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("code") or error
    if error:
        return error
    return raw_status or body


def arm_status_fetcher(client) -> Callable[[OperationHandle], StatusReport]:
    """
    Build the status query used for Azure Resource Manager operations.

    Args:
        client: ApiClient authenticated against the management endpoint.

    Returns:
        callable: ``fetch(handle) -> StatusReport``.
    """
    def fetch(handle: OperationHandle) -> StatusReport:
        if handle.mode == "done" or not handle.poll_url:
            return StatusReport(OperationState.SUCCEEDED, payload=handle.initial_payload)

        response = client.request("GET", handle.poll_url)
        retry_after = parse_retry_after(response.headers)

        if handle.mode == "location":
            if response.status == 202:
                return StatusReport(OperationState.POLLING, retry_after=retry_after)
            # PUT/PATCH monitors may answer with an empty body; the resource is authoritative
            if handle.final_url:
                return StatusReport(OperationState.SUCCEEDED, payload=client.send("GET", handle.final_url))
            return StatusReport(OperationState.SUCCEEDED, payload=response.json() if response.body else None)

        body = response.json() if response.body else {}
        if handle.mode == "resource":
            raw_status = ((body or {}).get("properties") or {}).get("provisioningState")
        else:
            raw_status = (body or {}).get("status")
        state = arm_state(raw_status)

        if state is OperationState.SUCCEEDED:
            payload = body if handle.mode == "resource" else None
            if handle.final_url and handle.mode != "resource":
                payload = client.send("GET", handle.final_url)
            return StatusReport(state, payload=payload)
        if state is OperationState.POLLING:
            return StatusReport(state, retry_after=retry_after)
        return StatusReport(state, detail=_error_detail(body, raw_status))

    return fetch


#=============================================================================
# Poller
#=============================================================================

class LROPoller:
    """
    Drive an OperationHandle to a terminal state.

    Args:
        fetch_status (callable): ``fetch(handle) -> StatusReport``; one status query.
        handle (OperationHandle): The operation to poll.
        interval (float): Seconds between polls when the server suggests none.
        sleep (callable): Blocking sleep, defaults to time.sleep.
        cancel_event (threading.Event): Set by the caller to stop waiting.
        deadline (float): Monotonic timestamp after which the caller stops waiting.
        transient_retries (int): Extra attempts for a status query that fails
            with TransientNetworkError before it propagates.
        clock (callable): Monotonic clock used with ``deadline``.
    """

    def __init__(
        self,
        fetch_status: Callable[[OperationHandle], StatusReport],
        handle: OperationHandle,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] | None = None,
        cancel_event=None,
        deadline: float | None = None,
        transient_retries: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ):
        if interval is None or interval < 0:
            raise ValueError("Poll interval must be a non-negative number of seconds.")
        self._fetch_status = fetch_status
        self.handle = handle
        self._interval = interval
        self._sleep = sleep or time.sleep
        self._cancel_event = cancel_event
        self._deadline = deadline
        self._transient_retries = max(0, transient_retries)
        self._clock = clock
        self._state = OperationState.SUBMITTED
        self._outcome: OperationResult | None = None
        self._next_wait = handle.retry_after
        self.poll_count = 0

    def status(self) -> OperationState:
        return self._state

    def done(self) -> bool:
        return self._state.is_terminal

    @property
    def outcome(self) -> OperationResult | None:
        return self._outcome

    def _query(self) -> StatusReport:
        retrying = Retrying(
            retry=retry_if_exception_type(TransientNetworkError),
            wait=wait_exponential(min=1, max=16),
            stop=stop_after_attempt(self._transient_retries + 1),
            sleep=self._sleep,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                self.poll_count += 1
                return self._fetch_status(self.handle)

    def poll_once(self) -> OperationState:
        """Issue one status query, unless the operation is already terminal."""
        if self.done():
            return self._state

        self._state = OperationState.POLLING
        report = self._query()

        if report.state is OperationState.SUCCEEDED:
            self._outcome = Succeeded(report.payload)
        elif report.state is OperationState.FAILED:
            self._outcome = Failed(report.detail)
        elif report.state is OperationState.CANCELED:
            self._outcome = Canceled(report.detail)
        else:
            self._next_wait = report.retry_after if report.retry_after is not None else self._interval
            return self._state

        self._state = report.state
        logging.debug(f"Operation reached terminal state {self._state.value} after {self.poll_count} status queries")
        return self._state

    def _check_abandoned(self):
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise PollingAbandoned("Stopped waiting for the operation (cancellation requested).")
        if self._deadline is not None and self._clock() >= self._deadline:
            raise PollingAbandoned("Stopped waiting for the operation (deadline reached).")

    def _wait(self, seconds):
        if not seconds:
            return
        if self._deadline is not None:
            seconds = max(0.0, min(seconds, self._deadline - self._clock()))
        if self._cancel_event is not None:
            if self._cancel_event.wait(seconds):
                raise PollingAbandoned("Stopped waiting for the operation (cancellation requested).")
        else:
            self._sleep(seconds)

    def wait(self) -> OperationResult:
        """Poll until terminal and return the cached OperationResult."""
        while not self.done():
            if self._next_wait:
                self._wait(self._next_wait)
            self._check_abandoned()
            self.poll_once()
            if not self.done():
                logging.info(f"Operation still running, checking again in {self._next_wait:g} seconds...")
        return self._outcome

    def result(self):
        """
        Poll until terminal.

        Returns:
            The final resource payload on success.

        Raises:
            OperationFailed: The server reported terminal failure.
            OperationCanceled: The server reported the operation canceled.
            PollingAbandoned: The caller's cancel_event or deadline fired.
            TransientNetworkError: The status endpoint could not be reached.
        """
        outcome = self.wait()
        if isinstance(outcome, Failed):
            raise OperationFailed(outcome.detail)
        if isinstance(outcome, Canceled):
            raise OperationCanceled(outcome.detail)
        return outcome.payload
