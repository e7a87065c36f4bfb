"""
Error taxonomy for the set-image pipeline.
"""
from typing import List, Optional


class SetImageError(Exception):
    """Base class for every failure that ends an invocation."""

    phase = "run"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.phase}] {self.message}"


class ValidationError(SetImageError):
    """One or more invocation parameters are missing or malformed."""

    phase = "validate"

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class MutationExhausted(SetImageError):
    """Every PATCH attempt failed."""

    phase = "patch"

    def __init__(self, attempts: int, status_code: Optional[int], body: str):
        self.attempts = attempts
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"image update failed after {attempts} attempts "
            f"(last HTTP status: {status_code if status_code is not None else 'no response'}): {body}"
        )


class StatusUnreachable(SetImageError):
    """Too many consecutive status fetches failed while waiting for the rollout."""

    phase = "wait"

    def __init__(self, failures: int, status_code: Optional[int], body: str):
        self.failures = failures
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"could not fetch workload status ({failures} consecutive failures, "
            f"last HTTP status: {status_code if status_code is not None else 'no response'}): {body}"
        )


class RolloutTimeout(SetImageError):
    """The rollout did not converge before the deadline."""

    phase = "wait"

    def __init__(self, timeout_s: float, last_status=None):
        self.timeout_s = timeout_s
        self.last_status = last_status
        snapshot = last_status.describe() if last_status is not None else "no status observed"
        super().__init__(
            f"rollout did not complete within {timeout_s:g} seconds; last status: {snapshot}"
        )
