"""
Tests for the image patch and its retry loop.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeResponse
from errors import MutationExhausted
from kube_client import KubeClient
from kube_types import TargetReference
from patch_executor import (
    JSON_PATCH_CONTENT_TYPE,
    MAX_ATTEMPTS,
    MERGE_PATCH_CONTENT_TYPE,
    RESTART_ANNOTATION,
    PatchExecutor,
    build_payload,
    utc_timestamp,
)
from validators import validate_inputs


@pytest.fixture
def params(valid_inputs):
    return validate_inputs(valid_inputs)


@pytest.fixture
def merge_params(valid_inputs):
    valid_inputs.update(patch_strategy="merge", container="2")
    return validate_inputs(valid_inputs)


def _executor(params, http_mocker, fake_clock, clock=None):
    client = KubeClient(TargetReference.from_params(params), params.token, transport=http_mocker)
    kwargs = {"sleep": fake_clock.sleep}
    if clock is not None:
        kwargs["clock"] = clock
    return PatchExecutor(client, params, **kwargs)


class TestBuildPayload:

    def test_json_patch_replaces_indexed_image(self, valid_inputs):
        valid_inputs["container"] = "3"
        payload = build_payload(validate_inputs(valid_inputs))

        assert payload.content_type == "application/json-patch+json"
        assert payload.body == [{
            "op": "replace",
            "path": "/spec/template/spec/containers/3/image",
            "value": "registry/app:1.2.3",
        }]

    def test_merge_patch_names_container_and_stamps_restart(self, merge_params):
        payload = build_payload(merge_params, "2024-05-01T10:00:00Z")

        assert payload.content_type == "application/strategic-merge-patch+json"
        template = payload.body["spec"]["template"]
        assert template["metadata"]["annotations"] == {RESTART_ANNOTATION: "2024-05-01T10:00:00Z"}
        assert template["spec"]["containers"] == [{"name": "container-2", "image": "registry/app:1.2.3"}]

    def test_serialization_is_stable(self, params):
        assert build_payload(params).to_json() == build_payload(params).to_json()

    def test_utc_timestamp_format(self):
        assert utc_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)) == "2024-01-02T03:04:05Z"


class TestRetry:

    def test_first_attempt_succeeds(self, params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", FakeResponse(200))

        assert _executor(params, http_mocker, fake_clock).run() == 1
        assert len(http_mocker.calls) == 1
        assert fake_clock.sleeps == []

    def test_created_counts_as_success(self, params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", FakeResponse(201))

        assert _executor(params, http_mocker, fake_clock).run() == 1

    def test_four_failures_then_success(self, params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", *[FakeResponse(500, "boom")] * 4, FakeResponse(200))

        attempts = _executor(params, http_mocker, fake_clock).run()

        assert attempts == 5
        assert len(http_mocker.calls_for("PATCH")) == 5
        assert fake_clock.sleeps == [1, 1, 1, 1]

    def test_always_failing_exhausts_attempts(self, params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", FakeResponse(500, '{"message": "internal error"}'))

        with pytest.raises(MutationExhausted) as exc_info:
            _executor(params, http_mocker, fake_clock).run()

        assert len(http_mocker.calls_for("PATCH")) == MAX_ATTEMPTS == 5
        assert fake_clock.sleeps == [1, 1, 1, 1]
        assert exc_info.value.attempts == 5
        assert exc_info.value.status_code == 500
        assert exc_info.value.body == '{"message": "internal error"}'
        assert "internal error" in str(exc_info.value)
        assert str(exc_info.value).startswith("[patch]")

    @pytest.mark.parametrize("code", [204, 301, 401, 403, 404, 409, 422, 503])
    def test_other_codes_are_failures(self, params, http_mocker, fake_clock, code):
        http_mocker.queue("PATCH", FakeResponse(code, "nope"))

        with pytest.raises(MutationExhausted) as exc_info:
            _executor(params, http_mocker, fake_clock).run()

        assert exc_info.value.status_code == code

    def test_transport_errors_are_retried(self, params, http_mocker, fake_clock, connection_error):
        http_mocker.queue("PATCH", connection_error, connection_error, FakeResponse(200))

        assert _executor(params, http_mocker, fake_clock).run() == 3
        assert fake_clock.sleeps == [1, 1]

    def test_transport_error_on_last_attempt(self, params, http_mocker, fake_clock, connection_error):
        http_mocker.queue("PATCH", connection_error)

        with pytest.raises(MutationExhausted) as exc_info:
            _executor(params, http_mocker, fake_clock).run()

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.body
        assert "no response" in str(exc_info.value)


class TestRequests:

    def test_json_patch_request(self, params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", FakeResponse(200))

        _executor(params, http_mocker, fake_clock).run()

        call = http_mocker.calls[0]
        assert call.url == (
            "https://rancher.example.com/k8s/clusters/local/apis/apps/v1"
            "/namespaces/control/deployments/apicenter"
        )
        assert call.headers["Content-Type"] == JSON_PATCH_CONTENT_TYPE
        assert call.headers["Authorization"] == "Bearer tok-abc123"
        assert call.json()[0]["value"] == "registry/app:1.2.3"

    def test_json_patch_attempts_send_identical_bytes(self, params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", FakeResponse(502), FakeResponse(502), FakeResponse(200))

        _executor(params, http_mocker, fake_clock).run()

        bodies = {call.data for call in http_mocker.calls}
        assert len(bodies) == 1

    def test_merge_timestamp_recomputed_per_attempt(self, merge_params, http_mocker, fake_clock):
        http_mocker.queue("PATCH", FakeResponse(500), FakeResponse(200))
        moments = iter([
            datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc),
            datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc) + timedelta(seconds=1),
        ])

        _executor(merge_params, http_mocker, fake_clock, clock=lambda: next(moments)).run()

        stamps = [
            call.json()["spec"]["template"]["metadata"]["annotations"][RESTART_ANNOTATION]
            for call in http_mocker.calls
        ]
        assert stamps == ["2024-05-01T10:00:00Z", "2024-05-01T10:00:01Z"]
        assert all(c.headers["Content-Type"] == MERGE_PATCH_CONTENT_TYPE for c in http_mocker.calls)
        containers = {str(c.json()["spec"]["template"]["spec"]["containers"]) for c in http_mocker.calls}
        assert len(containers) == 1
