"""
Pydantic configuration models for providers and the transfer core.

Validates provider configs at initialization time instead of
silently passing bad values to SDK clients.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .retry import RetryPolicy


class AWSConfig(BaseModel):
    """Configuration for AWS S3.

    Credentials are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_DEFAULT_REGION).
    3. If neither is set, fields are left as None so boto3 can fall back to its
       own credential chain (instance metadata, ~/.aws/credentials, etc.).
    """

    model_config = ConfigDict(extra="forbid")

    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    region_name: str | None = Field(default=None, description="AWS region (e.g. 'us-east-1')")
    endpoint_url: str | None = Field(
        default=None, description="Custom S3 endpoint (MinIO, LocalStack)"
    )
    connect_timeout: float | None = Field(
        default=None, gt=0, description="Seconds to wait for a connection"
    )
    read_timeout: float | None = Field(
        default=None, gt=0, description="Seconds to wait for a response"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing credentials."""
        env_map = {
            "aws_access_key_id": "AWS_ACCESS_KEY_ID",
            "aws_secret_access_key": "AWS_SECRET_ACCESS_KEY",
            "region_name": "AWS_DEFAULT_REGION",
        }
        for field, env_var in env_map.items():
            if not values.get(field):
                values[field] = os.environ.get(env_var)
        return values

    @property
    def account_id(self) -> str:
        return self.aws_access_key_id or "default"


class GCPConfig(BaseModel):
    """Configuration for GCP Cloud Storage.

    Credentials are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (GOOGLE_CLOUD_PROJECT, GOOGLE_APPLICATION_CREDENTIALS).
    3. If neither is set, fields are left as None so the GCP SDK can fall back
       to Application Default Credentials (ADC).
    """

    model_config = ConfigDict(extra="forbid")

    project_id: str | None = Field(default=None, description="GCP project ID")
    credentials: Any | None = Field(default=None, description="GCP credentials object")
    credentials_path: str | None = Field(
        default=None, description="Path to service account JSON key file"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing config."""
        if not values.get("project_id"):
            values["project_id"] = os.environ.get("GOOGLE_CLOUD_PROJECT") or os.environ.get(
                "GCLOUD_PROJECT"
            )
        if not values.get("credentials_path"):
            values["credentials_path"] = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
        return values

    @model_validator(mode="after")
    def validate_project_and_credentials(self) -> GCPConfig:
        """Ensure project_id is set and load credentials from path if needed."""
        if self.project_id is None:
            raise ValueError(
                "GCP project_id is required. Set it explicitly or via "
                "GOOGLE_CLOUD_PROJECT / GCLOUD_PROJECT environment variable."
            )
        if self.credentials is None and self.credentials_path:
            path = Path(self.credentials_path)
            if not path.exists():
                raise ValueError(f"Credentials file not found: {self.credentials_path}")
            from google.oauth2 import service_account  # lazy import

            self.credentials = service_account.Credentials.from_service_account_file(
                str(path)
            )
        return self

    @property
    def account_id(self) -> str:
        return self.project_id or "default"


class AzureConfig(BaseModel):
    """Configuration for Azure Blob Storage.

    Either a connection string or an account name is required. With an
    account name and no key, the SDK's default credential handling applies
    to the ``https://<account>.blob.core.windows.net`` endpoint.
    """

    model_config = ConfigDict(extra="forbid")

    account_name: str | None = Field(default=None, description="Storage account name")
    account_key: str | None = Field(default=None, description="Storage account shared key")
    connection_string: str | None = Field(default=None, description="Full connection string")
    account_url: str | None = Field(
        default=None, description="Override for the blob service endpoint URL"
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to the Azure CLI's conventional environment variables."""
        env_map = {
            "account_name": "AZURE_STORAGE_ACCOUNT",
            "account_key": "AZURE_STORAGE_KEY",
            "connection_string": "AZURE_STORAGE_CONNECTION_STRING",
        }
        for field, env_var in env_map.items():
            if not values.get(field):
                values[field] = os.environ.get(env_var)
        return values

    @model_validator(mode="after")
    def require_account(self) -> AzureConfig:
        if not self.connection_string and not self.account_name:
            raise ValueError(
                "Azure account_name or connection_string is required. Set it explicitly "
                "or via AZURE_STORAGE_ACCOUNT / AZURE_STORAGE_CONNECTION_STRING."
            )
        if self.account_name and not self.account_url:
            self.account_url = f"https://{self.account_name}.blob.core.windows.net"
        return self

    @property
    def account_id(self) -> str:
        if self.account_name:
            return self.account_name
        for part in (self.connection_string or "").split(";"):
            name, _, value = part.partition("=")
            if name.strip() == "AccountName":
                return value
        return "default"


class MemoryConfig(BaseModel):
    """Configuration for the in-process store."""

    model_config = ConfigDict(extra="forbid")

    account_id: str = Field(default="local", description="Logical account name")


class CoreConfig(BaseModel):
    """Tunables for sessions, transfers and listings.

    Attributes:
        max_concurrency: Parallel requests per batch.
        session_grace_period: Seconds an idle session stays open for reuse.
        max_list_depth: Deepest Group a hierarchical listing descends into.
        delimiter: Separator imposing hierarchy on flat keys.
        operation_timeout: Deadline for a whole orchestrated operation.
        retry: Backoff policy for individual requests.
    """

    model_config = ConfigDict(extra="forbid")

    max_concurrency: int = Field(default=8, ge=1)
    session_grace_period: float = Field(default=2.0, ge=0)
    max_list_depth: int = Field(default=1000, ge=1)
    delimiter: str = "/"
    operation_timeout: float | None = Field(default=None, gt=0)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


# Map provider names to their config models for dynamic validation
CONFIG_REGISTRY: dict[str, type[BaseModel]] = {
    "aws": AWSConfig,
    "gcp": GCPConfig,
    "azure": AzureConfig,
    "memory": MemoryConfig,
}


def validate_config(provider: str, config: dict) -> BaseModel:
    """Validate and return a typed config model for the given provider.

    Args:
        provider: The provider name (e.g. 'aws', 'azure').
        config: Raw configuration dictionary.

    Returns:
        A validated Pydantic config model.

    Raises:
        ValueError: If the provider is unknown.
        pydantic.ValidationError: If the config is invalid.
    """
    model = CONFIG_REGISTRY.get(provider)
    if model is None:
        raise ValueError(f"No config model registered for provider: {provider}")
    return model(**config)


__all__ = [
    "AWSConfig",
    "GCPConfig",
    "AzureConfig",
    "MemoryConfig",
    "CoreConfig",
    "CONFIG_REGISTRY",
    "validate_config",
]
