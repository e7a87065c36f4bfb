"""
Configuration settings for the set-image action.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class Settings(BaseSettings):
    """Action inputs and runtime settings from the process environment only."""

    # Action inputs (the host automation platform prefixes them with INPUT_)
    INPUT_BACKEND: str = Field(default="", description="Rancher URL: https://host[:port]")
    INPUT_TOKEN: str = Field(default="", description="Rancher API bearer token")
    INPUT_CLUSTER: str = Field(default="local", description="Rancher cluster id")
    INPUT_NAMESPACE: str = Field(default="", description="Workload namespace")
    INPUT_TYPE: str = Field(default="deployments", description="deployments|daemonsets|statefulsets")
    INPUT_WORKLOAD: str = Field(default="", description="Workload name")
    INPUT_CONTAINER: str = Field(default="0", description="Container index (0-99)")
    INPUT_IMAGE: str = Field(default="", description="Target image reference")
    INPUT_WAIT: str = Field(default="false", description="Wait for the rollout to complete")
    INPUT_PATCH_STRATEGY: str = Field(default="json-patch", description="json-patch|merge")

    # Service Configuration
    REQUEST_TIMEOUT_SECS: int = Field(default=30, gt=0, description="Per-request timeout")
    SSL_VERIFY: bool = Field(default=True, description="Verify the backend TLS certificate")
    LOG_LEVEL: str = Field(default="info", description="Log level: debug|info|warning|error|critical")

    # The working directory is the caller's checkout: never read a .env from it
    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _log_level(cls, value) -> str:
        level = str(value).strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"unsupported log level: {value!r} (accepted: {', '.join(LOG_LEVELS)})")
        return level

    def raw_inputs(self) -> dict:
        """Action inputs keyed by their short names, as the validator expects them."""
        return {
            "backend": self.INPUT_BACKEND,
            "token": self.INPUT_TOKEN,
            "cluster": self.INPUT_CLUSTER,
            "namespace": self.INPUT_NAMESPACE,
            "type": self.INPUT_TYPE,
            "workload": self.INPUT_WORKLOAD,
            "container": self.INPUT_CONTAINER,
            "image": self.INPUT_IMAGE,
            "wait": self.INPUT_WAIT,
            "patch_strategy": self.INPUT_PATCH_STRATEGY,
        }


def load_settings(**overrides) -> Settings:
    """Read settings from the process environment."""
    return Settings(_env_file=None, **overrides)
