"""
Shared configuration management for the edge router.
"""

from typing import List, Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="EDGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: Optional[str] = Field(default=None)
    enable_console_tracing: bool = Field(default=False)


class RouterConfig(BaseConfig):
    """Edge router configuration.

    Listener hosts and ports are only defaults: every listener is
    re-resolved on each call, see ``service_router.app.domain.endpoints``.
    """

    service_name: str = "router"
    host: str = "0.0.0.0"
    port: int = 8000

    # Cache backing service
    redis_password: SecretStr
    cache_host: str = Field(default="localhost")
    cache_port: int = Field(default=6379)

    # Backing listeners
    nginx_host: str = Field(default="localhost")
    nginx_port: int = Field(default=80)
    nginx2_host: str = Field(default="localhost")
    nginx2_port: int = Field(default=80)
    custom_host: str = Field(default="localhost")
    custom_port: int = Field(default=80)

    # Task pool
    aws_region: str = Field(default="us-east-1")
    task_cluster: str = Field(default="testing-1")
    task_definition: str = Field(default="hello-world")
    task_launch_type: str = Field(default="EC2")
    task_role_arn: Optional[str] = Field(default=None)
    task_policy_arns: List[str] = Field(
        default_factory=lambda: [
            "arn:aws:iam::aws:policy/AWSLambda_FullAccess",
            "arn:aws:iam::aws:policy/AmazonECS_FullAccess",
        ]
    )

    # "full" serializes every field of a handler failure into the 500 body,
    # "redacted" keeps only the allow-list in shared.errors.
    error_detail_mode: Literal["full", "redacted"] = Field(default="full")


def get_config(**overrides) -> RouterConfig:
    """Get router configuration, applying explicit overrides over the environment."""
    return RouterConfig(**overrides)
