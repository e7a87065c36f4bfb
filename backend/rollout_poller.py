"""
Waiting for a workload rollout to converge.
"""
import logging
import time
from enum import Enum
from typing import Callable, Optional

import requests

from errors import RolloutTimeout, StatusUnreachable
from kube_client import KubeClient
from kube_types import WorkloadStatus

logger = logging.getLogger(__name__)

ROLLOUT_TIMEOUT_S = 300
POLL_INTERVAL_S = 2
MAX_CONSECUTIVE_FAILURES = 5


class PollState(str, Enum):
    POLLING = "polling"
    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    UNREACHABLE = "unreachable"


def replicas_available(status: WorkloadStatus) -> bool:
    """All replicas available; blind to whether the new spec was observed."""
    return status.replicas != 0 and status.replicas == status.available_replicas


def rollout_complete(status: WorkloadStatus) -> bool:
    """The controller observed the latest generation and every replica is updated and available."""
    return (
        status.generation != 0
        and status.observed_generation >= status.generation
        and status.updated_replicas == status.replicas
        and status.available_replicas == status.replicas
        and status.replicas > 0
    )


class RolloutPoller:
    """
    Polls the workload until the completion predicate holds.

    The poller sleeps one interval before every fetch, so the first status
    is read POLL_INTERVAL_S after the patch. ``clock`` and ``sleep`` are
    injectable so tests can run without wall-clock waits.
    """

    def __init__(
        self,
        client: KubeClient,
        predicate: Callable[[WorkloadStatus], bool] = rollout_complete,
        timeout_s: float = ROLLOUT_TIMEOUT_S,
        interval_s: float = POLL_INTERVAL_S,
        max_failures: int = MAX_CONSECUTIVE_FAILURES,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.predicate = predicate
        self.timeout_s = timeout_s
        self.interval_s = interval_s
        self.max_failures = max_failures
        self.clock = clock
        self.sleep = sleep

        self.state = PollState.POLLING
        self.failures = 0
        self.last_status: Optional[WorkloadStatus] = None

    def _fetch(self):
        """Return (status, None) on success or (None, (status_code, body)) on failure."""
        try:
            response = self.client.get()
        except requests.RequestException as e:
            return None, (None, str(e))
        if response.status_code != 200:
            return None, (response.status_code, response.text)
        try:
            document = response.json()
        except ValueError:
            return None, (response.status_code, f"unparseable body: {response.text[:200]}")
        if not isinstance(document, dict):
            return None, (response.status_code, "response is not a JSON object")
        return WorkloadStatus.from_json(document), None

    def run(self) -> WorkloadStatus:
        """
        Wait for the rollout.

        Returns:
            The status snapshot that satisfied the predicate

        Raises:
            StatusUnreachable: after max_failures consecutive failed fetches
            RolloutTimeout: if the predicate never held within timeout_s
        """
        logger.info("=== waiting for rollout ===")
        started = self.clock()
        elapsed = 0.0

        while elapsed < self.timeout_s:
            self.sleep(self.interval_s)
            elapsed = self.clock() - started

            status, failure = self._fetch()
            if failure is not None:
                self.failures += 1
                status_code, body = failure
                logger.warning(
                    f"⚠ failed to fetch workload status ({self.failures}/{self.max_failures})"
                )
                if self.failures >= self.max_failures:
                    self.state = PollState.UNREACHABLE
                    raise StatusUnreachable(self.failures, status_code, body)
                continue

            self.failures = 0
            self.last_status = status
            logger.info(f"[{elapsed:.0f}s] {status.describe()}")

            if self.predicate(status):
                self.state = PollState.CONVERGED
                logger.info("✓ rollout complete: new version fully available")
                return status

        self.state = PollState.TIMED_OUT
        raise RolloutTimeout(self.timeout_s, self.last_status)
