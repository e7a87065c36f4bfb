"""
Image update with bounded retry.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import requests

from errors import MutationExhausted
from kube_client import KubeClient
from kube_types import PatchPayload
from validators import InvocationParameters, PatchStrategy

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
RETRY_DELAY_S = 1
SUCCESS_CODES = (200, 201)

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"
MERGE_PATCH_CONTENT_TYPE = "application/strategic-merge-patch+json"
RESTART_ANNOTATION = "kubectl.kubernetes.io/restartedAt"


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%SZ")


def container_name(index: int) -> str:
    """Name the merge patch uses to match the container."""
    return f"container-{index}"


def build_payload(params: InvocationParameters, timestamp: Optional[str] = None) -> PatchPayload:
    """
    Build the patch for the configured strategy.

    Args:
        params: Validated invocation parameters
        timestamp: Restart annotation value for the merge strategy

    Returns:
        PatchPayload to send
    """
    if params.patch_strategy is PatchStrategy.MERGE:
        return PatchPayload(
            content_type=MERGE_PATCH_CONTENT_TYPE,
            body={
                "spec": {
                    "template": {
                        "metadata": {
                            "annotations": {RESTART_ANNOTATION: timestamp or utc_timestamp()}
                        },
                        "spec": {
                            "containers": [
                                {"name": container_name(params.container), "image": params.image}
                            ]
                        },
                    }
                }
            },
        )
    return PatchPayload(
        content_type=JSON_PATCH_CONTENT_TYPE,
        body=[{
            "op": "replace",
            "path": f"/spec/template/spec/containers/{params.container}/image",
            "value": params.image,
        }],
    )


class PatchExecutor:
    """Applies the image patch, retrying up to MAX_ATTEMPTS times."""

    def __init__(
        self,
        client: KubeClient,
        params: InvocationParameters,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.client = client
        self.params = params
        self.sleep = sleep
        self.clock = clock

    def run(self) -> int:
        """
        Patch the workload.

        Returns:
            Number of attempts it took

        Raises:
            MutationExhausted: if no attempt got a 200/201 response
        """
        timestamped = self.params.patch_strategy is PatchStrategy.MERGE
        payload = build_payload(self.params, utc_timestamp(self.clock()))
        status_code: Optional[int] = None
        body = ""

        for attempt in range(1, MAX_ATTEMPTS + 1):
            if timestamped and attempt > 1:
                payload = build_payload(self.params, utc_timestamp(self.clock()))
            logger.info(f"[attempt {attempt}/{MAX_ATTEMPTS}] updating image...")

            try:
                response = self.client.patch(payload)
            except requests.RequestException as e:
                status_code, body = None, str(e)
                logger.warning(f"✗ request failed: {e}")
            else:
                if response.status_code in SUCCESS_CODES:
                    if timestamped:
                        restarted_at = payload.body["spec"]["template"]["metadata"]["annotations"][RESTART_ANNOTATION]
                        logger.info(f"✓ image updated (restart forced at {restarted_at})")
                    else:
                        logger.info("✓ image updated")
                    return attempt
                status_code, body = response.status_code, response.text
                logger.warning(f"✗ request failed (HTTP {status_code}): {body}")

            if attempt < MAX_ATTEMPTS:
                logger.info(f"retrying in {RETRY_DELAY_S} second...")
                self.sleep(RETRY_DELAY_S)

        raise MutationExhausted(MAX_ATTEMPTS, status_code, body)
