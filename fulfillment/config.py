"""
Runtime configuration.

Settings are read from an optional YAML file and then overridden by
environment variables, so docker-compose style deployments can configure
everything through the environment while local runs can keep a
``config.yaml`` next to the code.
"""

import os
from datetime import timedelta
from typing import Any, Dict, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, Field


class TemporalConfig(BaseModel):
    """Connection settings for the Temporal server."""

    endpoint: str = "localhost:7233"
    namespace: str = "default"
    connect_attempts: int = Field(default=10, ge=1)
    connect_delay_seconds: float = Field(default=5.0, ge=0)


class MinioConfig(BaseModel):
    endpoint: str = "localhost:9000"
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    secure: bool = False


class LocalEngineConfig(BaseModel):
    """Settings for the self-hosted engine."""

    run_store: Literal["memory", "minio"] = "memory"
    dispatch: bool = True
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    claim_timeout_seconds: float = Field(default=120.0, gt=0)
    activity_delay_seconds: float = Field(default=0.5, ge=0)

    @property
    def claim_timeout(self) -> timedelta:
        return timedelta(seconds=self.claim_timeout_seconds)


class Settings(BaseModel):
    """Top-level configuration model."""

    backend: Literal["temporal", "local"] = "temporal"
    temporal: TemporalConfig = TemporalConfig()
    minio: MinioConfig = MinioConfig()
    local: LocalEngineConfig = LocalEngineConfig()
    api_terminate_enabled: bool = False

    @property
    def engine_address(self) -> str:
        if self.backend == "temporal":
            return self.temporal.endpoint
        return f"local ({self.local.run_store})"


# Environment variable -> (section, field); section None is top level.
ENV_OVERRIDES: Dict[str, tuple] = {
    "WORKFLOW_BACKEND": (None, "backend"),
    "API_TERMINATE_ENABLED": (None, "api_terminate_enabled"),
    "TEMPORAL_ENDPOINT": ("temporal", "endpoint"),
    "TEMPORAL_NAMESPACE": ("temporal", "namespace"),
    "MINIO_ENDPOINT": ("minio", "endpoint"),
    "MINIO_ACCESS_KEY": ("minio", "access_key"),
    "MINIO_SECRET_KEY": ("minio", "secret_key"),
    "MINIO_SECURE": ("minio", "secure"),
    "RUN_STORE": ("local", "run_store"),
    "LOCAL_DISPATCH": ("local", "dispatch"),
    "POLL_INTERVAL_SECONDS": ("local", "poll_interval_seconds"),
    "CLAIM_TIMEOUT_SECONDS": ("local", "claim_timeout_seconds"),
    "ACTIVITY_DELAY_SECONDS": ("local", "activity_delay_seconds"),
}


def _apply_env(data: Dict[str, Any], environ: Mapping[str, str]) -> None:
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        if section is None:
            data[field] = value
        else:
            target = data.get(section)
            if not isinstance(target, dict):
                target = {}
                data[section] = target
            target[field] = value


def load_settings(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Load settings from YAML, then apply environment overrides.

    Args:
        path: Optional path to config file. Falls back to the
            FULFILLMENT_CONFIG env variable or 'config.yaml' in the current
            directory. A missing file is not an error.
        environ: Environment mapping, ``os.environ`` by default.

    Raises:
        pydantic.ValidationError: if a value does not validate, e.g.
            ``WORKFLOW_BACKEND=kafka``.
    """
    environ = os.environ if environ is None else environ
    config_path = path or environ.get("FULFILLMENT_CONFIG", "config.yaml")

    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    _apply_env(data, environ)
    return Settings.model_validate(data)
