"""
Validation of the action inputs.

Every input arrives as a raw string. ``validate_inputs`` turns them into a
frozen ``InvocationParameters`` or raises ``errors.ValidationError``; nothing
talks to the network before this has succeeded.
"""
import re
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import ValidationError
from kube_types import WorkloadType

REQUIRED_FIELDS = ("backend", "token", "namespace", "workload", "image")

DEFAULTS = {
    "cluster": "local",
    "type": WorkloadType.DEPLOYMENT.value,
    "container": "0",
    "wait": "false",
    "patch_strategy": "json-patch",
}

MAX_NAME_LENGTH = 253
MAX_CONTAINER_INDEX = 99
MAX_IMAGE_LENGTH = 512
MAX_TOKEN_LENGTH = 1024

HOST_LABEL = r"[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?"
BACKEND_RE = re.compile(rf"https://(?P<host>{HOST_LABEL}(\.{HOST_LABEL})*)(:(?P<port>[0-9]{{1,5}}))?/?")
MAX_PORT = 65535
# RFC 1123 label syntax
NAME_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?")
CONTAINER_RE = re.compile(r"[0-9]+")
IMAGE_RE = re.compile(r"[a-zA-Z0-9._:/@-]+")
# Colons allow Rancher's token-xxxxx:yyyy form
TOKEN_RE = re.compile(r"[a-zA-Z0-9._:-]+")

TRUTHY = ("true", "1", "yes", "on")


class PatchStrategy(str, Enum):
    """How the image change is expressed on the wire."""
    JSON_PATCH = "json-patch"
    MERGE = "merge"


def _check_name(value: str, field_name: str) -> str:
    if not value:
        raise ValueError(f"{field_name} must not be empty")
    if not NAME_RE.fullmatch(value):
        raise ValueError(
            f"invalid {field_name}: {value!r} (only lowercase letters, digits and '-', "
            f"not starting or ending with '-')"
        )
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"{field_name} is longer than {MAX_NAME_LENGTH} characters")
    return value


class InvocationParameters(BaseModel):
    """Validated, immutable inputs of one invocation."""

    model_config = ConfigDict(frozen=True)

    backend: str = Field(..., description="Rancher base URL without trailing slash")
    token: str = Field(..., repr=False)
    namespace: str
    workload: str
    cluster: str = Field(default="local")
    workload_type: WorkloadType = Field(default=WorkloadType.DEPLOYMENT)
    container: int = Field(default=0)
    image: str
    wait: bool = Field(default=False)
    patch_strategy: PatchStrategy = Field(default=PatchStrategy.JSON_PATCH)

    @field_validator("backend", mode="before")
    @classmethod
    def _backend(cls, value: Any) -> str:
        value = str(value)
        match = BACKEND_RE.fullmatch(value)
        port = match.group("port") if match else None
        if not match or (port is not None and not 1 <= int(port) <= MAX_PORT):
            raise ValueError(
                f"invalid or insecure backend URL: {value!r} (expected https://hostname[:port])"
            )
        return value.rstrip("/")

    @field_validator("token", mode="before")
    @classmethod
    def _token(cls, value: Any) -> str:
        value = str(value)
        if not value:
            raise ValueError("token must not be empty")
        if not TOKEN_RE.fullmatch(value):
            raise ValueError(
                "token contains illegal characters (only letters, digits, '.', '-', '_' and ':')"
            )
        if len(value) > MAX_TOKEN_LENGTH:
            raise ValueError(f"token is longer than {MAX_TOKEN_LENGTH} characters")
        return value

    @field_validator("namespace", "workload", "cluster", mode="before")
    @classmethod
    def _names(cls, value: Any, info) -> str:
        return _check_name(str(value), info.field_name)

    @field_validator("workload_type", mode="before")
    @classmethod
    def _workload_type(cls, value: Any) -> WorkloadType:
        if isinstance(value, WorkloadType):
            return value
        return WorkloadType.parse(str(value))

    @field_validator("container", mode="before")
    @classmethod
    def _container(cls, value: Any) -> int:
        value = str(value)
        if not CONTAINER_RE.fullmatch(value):
            raise ValueError(f"container must be a non-negative integer, got {value!r}")
        index = int(value)
        if index > MAX_CONTAINER_INDEX:
            raise ValueError(f"container index out of range (0-{MAX_CONTAINER_INDEX}): {index}")
        return index

    @field_validator("image", mode="before")
    @classmethod
    def _image(cls, value: Any) -> str:
        value = str(value)
        if not value:
            raise ValueError("image must not be empty")
        if not IMAGE_RE.fullmatch(value):
            raise ValueError(
                f"invalid image: {value!r} (only letters, digits, '.', '-', '_', '/', ':' and '@')"
            )
        if len(value) > MAX_IMAGE_LENGTH:
            raise ValueError(f"image is longer than {MAX_IMAGE_LENGTH} characters")
        return value

    @field_validator("wait", mode="before")
    @classmethod
    def _wait(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in TRUTHY

    @field_validator("patch_strategy", mode="before")
    @classmethod
    def _patch_strategy(cls, value: Any) -> PatchStrategy:
        if isinstance(value, PatchStrategy):
            return value
        try:
            return PatchStrategy(str(value))
        except ValueError:
            accepted = ", ".join(s.value for s in PatchStrategy)
            raise ValueError(f"unsupported patch strategy: {value!r} (accepted: {accepted})")


def validate_inputs(raw: Mapping[str, Any]) -> InvocationParameters:
    """
    Validate raw action inputs.

    Args:
        raw: Input values keyed by short name (backend, token, cluster, ...)

    Returns:
        InvocationParameters ready for the patch and wait phases

    Raises:
        ValidationError: if a required input is missing or any input is malformed
    """
    values: Dict[str, Any] = {}
    for key in REQUIRED_FIELDS + tuple(DEFAULTS):
        value = raw.get(key)
        if value is None or value == "":
            value = DEFAULTS.get(key, "")
        values[key] = value

    missing = [key for key in REQUIRED_FIELDS if values[key] == ""]
    if missing:
        raise ValidationError([
            f"missing required inputs: {', '.join(missing)} "
            f"(required: {', '.join(REQUIRED_FIELDS)})"
        ])

    values["workload_type"] = values.pop("type")
    try:
        return InvocationParameters(**values)
    except PydanticValidationError as e:
        raise ValidationError([_describe(error) for error in e.errors()]) from e


def _describe(error: Dict[str, Any]) -> str:
    field_name = ".".join(str(part) for part in error.get("loc", ())) or "input"
    if field_name == "workload_type":
        field_name = "type"
    cause = (error.get("ctx") or {}).get("error")
    message = str(cause) if cause is not None else error.get("msg", "invalid value")
    return f"{field_name}: {message}"
