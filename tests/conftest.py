"""
Shared pytest fixtures for the set-image tests.

This module provides:
- HttpMocker: a fake HTTP transport with queued responses and a call log
- FakeClock: a monotonic clock whose sleep advances time instantly
- valid_inputs: the raw inputs of a well-formed invocation
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import pytest
import requests

from config import Settings


@dataclass
class FakeResponse:
    """Stand-in for requests.Response."""
    status_code: int = 200
    body: Union[str, Dict[str, Any], None] = None

    @property
    def text(self) -> str:
        if self.body is None:
            return ""
        if isinstance(self.body, str):
            return self.body
        return json.dumps(self.body)

    def json(self) -> Any:
        return json.loads(self.text)


@dataclass
class HttpCall:
    """Record of a request made through the mocker."""
    method: str
    url: str
    headers: Dict[str, str]
    data: Optional[bytes] = None
    verify: Any = None

    def json(self) -> Any:
        return json.loads(self.data.decode("utf-8"))


class HttpMocker:
    """
    Fake transport with one response queue per HTTP method.

    Queued items are FakeResponse objects or exceptions to raise. The last
    item of a queue is repeated once the queue is exhausted.

    Usage:
        def test_retry(http_mocker):
            http_mocker.queue("PATCH", FakeResponse(500), FakeResponse(200))
            ...
            assert len(http_mocker.calls_for("PATCH")) == 2
    """

    def __init__(self):
        self._queues: Dict[str, List[Any]] = {}
        self.calls: List[HttpCall] = []

    def queue(self, method: str, *items: Any) -> None:
        self._queues.setdefault(method, []).extend(items)

    def request(self, method: str, url: str, headers=None, data=None, **kwargs) -> FakeResponse:
        self.calls.append(HttpCall(method=method, url=url, headers=dict(headers or {}),
                                   data=data, verify=kwargs.get("verify")))
        pending = self._queues.get(method)
        if not pending:
            raise AssertionError(f"unexpected {method} {url}: no response queued")
        item = pending.pop(0) if len(pending) > 1 else pending[0]
        if isinstance(item, Exception):
            raise item
        return item

    def calls_for(self, method: str) -> List[HttpCall]:
        return [c for c in self.calls if c.method == method]


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def workload_document(generation=2, observed=2, replicas=3, updated=3, available=3) -> Dict[str, Any]:
    """A minimal workload object as the API returns it."""
    return {
        "kind": "Deployment",
        "metadata": {"name": "apicenter", "namespace": "control", "generation": generation},
        "status": {
            "observedGeneration": observed,
            "replicas": replicas,
            "updatedReplicas": updated,
            "availableReplicas": available,
        },
    }


@pytest.fixture
def http_mocker():
    return HttpMocker()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def valid_inputs() -> Dict[str, str]:
    return {
        "backend": "https://rancher.example.com",
        "token": "tok-abc123",
        "cluster": "local",
        "namespace": "control",
        "workload": "apicenter",
        "type": "deployments",
        "container": "0",
        "image": "registry/app:1.2.3",
        "wait": "false",
    }


@pytest.fixture
def make_settings(valid_inputs):
    """Build Settings from short input names, ignoring the real environment."""

    def _make(**overrides) -> Settings:
        values = dict(valid_inputs)
        values.update(overrides)
        kwargs = {f"INPUT_{key.upper()}": value for key, value in values.items()}
        return Settings(_env_file=None, **kwargs)

    return _make


@pytest.fixture
def connection_error():
    return requests.ConnectionError("connection refused")
