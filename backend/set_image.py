#!/usr/bin/env python3
"""
Set the image of a Kubernetes workload through the Rancher API.

Reads its inputs from INPUT_* environment variables, patches the workload
and, when INPUT_WAIT is true, waits for the rollout to converge. Exits 0 on
success and 1 on any failure.
"""
from __future__ import annotations

import logging
import sys
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from config import Settings, load_settings
from errors import SetImageError
from kube_client import KubeClient
from kube_types import TargetReference, WorkloadStatus
from logging_config import configure_logging
from patch_executor import PatchExecutor
from rollout_poller import RolloutPoller
from validators import validate_inputs

logger = logging.getLogger("set_image")


def run(
    settings: Settings,
    transport: Optional[Any] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Optional[WorkloadStatus]:
    """
    Validate, patch and optionally wait.

    Args:
        settings: Loaded settings holding the raw action inputs
        transport: HTTP transport override (defaults to ``requests``)
        sleep: Sleep function used between retries and poll ticks
        clock: Monotonic clock used to measure the rollout deadline

    Returns:
        The converged WorkloadStatus when waiting, otherwise None

    Raises:
        SetImageError: on any validation or operational failure
    """
    params = validate_inputs(settings.raw_inputs())
    target = TargetReference.from_params(params)

    logger.info("=== K8s Set Image ===")
    logger.info(f"API URL: {target.url}")
    logger.info(f"Image: {params.image}")
    logger.info(f"Container index: {params.container}")
    logger.info(f"Patch strategy: {params.patch_strategy.value}")

    client = KubeClient(
        target,
        params.token,
        timeout_s=settings.REQUEST_TIMEOUT_SECS,
        verify_ssl=settings.SSL_VERIFY,
        transport=transport,
    )
    PatchExecutor(client, params, sleep=sleep).run()

    status = None
    if params.wait:
        status = RolloutPoller(client, clock=clock, sleep=sleep).run()

    logger.info("=== Done ===")
    return status


def main() -> int:
    try:
        settings = load_settings()
    except PydanticValidationError as e:
        configure_logging()
        logger.error(f"❌ [config] invalid configuration: {e}")
        return 1

    configure_logging(settings.LOG_LEVEL, secrets=[settings.INPUT_TOKEN])

    try:
        run(settings)
    except SetImageError as e:
        logger.error(f"❌ {e}")
        last_status = getattr(e, "last_status", None)
        if last_status is not None:
            logger.error(f"Final status: {last_status.raw_status}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
