"""
HTTP client for a workload behind Rancher's Kubernetes API proxy.
"""
import logging
from typing import Optional, Dict, Any

import requests

from kube_types import TargetReference, PatchPayload

logger = logging.getLogger(__name__)

USER_AGENT = "k8s-set-image/0.1.0"


class KubeClient:
    """Issues the PATCH and GET calls against a single workload URL."""

    def __init__(
        self,
        target: TargetReference,
        token: str,
        timeout_s: float = 30,
        verify_ssl: bool = True,
        transport: Optional[Any] = None,
    ):
        """
        Initialize the client.

        Args:
            target: Workload the client talks to
            token: Bearer token for the Authorization header
            timeout_s: Per-request timeout in seconds
            verify_ssl: Whether to verify the backend certificate
            transport: Object exposing ``request(method, url, **kwargs)``;
                defaults to the ``requests`` module
        """
        self.target = target
        self.timeout_s = timeout_s
        self.verify_ssl = verify_ssl
        self.transport = transport if transport is not None else requests
        self._auth_headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    @property
    def url(self) -> str:
        return self.target.url

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = dict(self._auth_headers)
        if extra:
            headers.update(extra)
        return headers

    def patch(self, payload: PatchPayload) -> requests.Response:
        """
        Send a patch to the workload.

        Args:
            payload: Patch document and its content type

        Returns:
            The HTTP response, whatever its status code

        Raises:
            requests.RequestException: on transport failure
        """
        logger.debug(f"PATCH {self.url} ({payload.content_type})")
        return self.transport.request(
            "PATCH",
            self.url,
            headers=self._headers({"Content-Type": payload.content_type}),
            data=payload.to_json().encode("utf-8"),
            timeout=self.timeout_s,
            verify=self.verify_ssl,
        )

    def get(self) -> requests.Response:
        """
        Fetch the workload object.

        Returns:
            The HTTP response, whatever its status code

        Raises:
            requests.RequestException: on transport failure
        """
        logger.debug(f"GET {self.url}")
        return self.transport.request(
            "GET",
            self.url,
            headers=self._headers(),
            timeout=self.timeout_s,
            verify=self.verify_ssl,
        )
