"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env file, optionally
overlaid with a YAML/JSON/env config file passed on the command line.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vaultfill.shared.domain.exceptions import ConfigurationError

DEFAULT_K8S_TOKEN_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"


class BackendType(str, Enum):
    """Supported secret backends (AVP_TYPE)."""

    VAULT = "vault"
    IBM_SECRETS_MANAGER = "ibmsecretsmanager"


class AuthType(str, Enum):
    """Supported Vault authentication methods (AVP_AUTH_TYPE)."""

    TOKEN = "token"
    APPROLE = "approle"
    GITHUB = "github"
    K8S = "k8s"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Backend selection
    avp_type: BackendType = Field(default=BackendType.VAULT, description="Secret backend type")
    avp_auth_type: AuthType = Field(default=AuthType.TOKEN, description="Vault auth method")

    # HashiCorp Vault
    vault_addr: str | None = Field(default=None, description="Vault server address")
    vault_token: str | None = Field(default=None, description="Pre-existing Vault token")
    avp_role_id: str | None = Field(default=None, description="AppRole role id")
    avp_secret_id: str | None = Field(default=None, description="AppRole secret id")
    avp_github_token: str | None = Field(default=None, description="GitHub token for Vault github auth")
    avp_k8s_role: str | None = Field(default=None, description="Vault role for kubernetes auth")
    avp_k8s_mount_path: str = Field(default="auth/kubernetes", description="Kubernetes auth mount path")
    avp_k8s_token_path: str = Field(
        default=DEFAULT_K8S_TOKEN_PATH,
        description="Service account token used for kubernetes auth",
    )
    avp_kv_version: int = Field(default=2, description="Vault KV secrets engine version (1 or 2)")

    # Source path
    avp_path_prefix: str | None = Field(
        default=None,
        validation_alias=AliasChoices("avp_path_prefix", "path_prefix"),
        description="Prefix used to build each document's default source path",
    )

    # IBM Cloud Secrets Manager
    avp_ibm_api_key: str | None = Field(default=None, description="IBM Cloud IAM API key")
    avp_ibm_instance_url: str | None = Field(default=None, description="Secrets Manager instance URL")
    ibm_iam_url: str = Field(default="https://iam.cloud.ibm.com", description="IBM Cloud IAM endpoint")

    # Fetching
    fetch_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout per backend call")
    fetch_retries: int = Field(default=3, ge=1, description="Attempts per backend call")
    fetch_retry_delay_seconds: float = Field(default=0.5, ge=0, description="Initial backoff between attempts")
    max_concurrency: int = Field(default=8, ge=1, description="Documents resolved in parallel")

    # Logging
    app_env: str = Field(default="production", description="Environment (development/production)")
    log_level: str = Field(default="WARNING", description="Logging level")
    log_redaction_enabled: bool = Field(default=True, description="Enable secret redaction in logs")

    @field_validator("avp_kv_version")
    @classmethod
    def _check_kv_version(cls, v: int) -> int:
        if v not in (1, 2):
            raise ValueError("AVP_KV_VERSION must be 1 or 2")
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("avp_path_prefix")
    @classmethod
    def _strip_prefix(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().rstrip("/") or None

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"

    def validate_backend(self) -> None:
        """
        Fail fast when the selected backend lacks required settings.

        Raises:
            ConfigurationError: If a required field is missing
        """
        missing: list[str] = []

        if self.avp_type == BackendType.VAULT:
            if not self.vault_addr:
                missing.append("VAULT_ADDR")
            if self.avp_auth_type == AuthType.TOKEN and not self.vault_token:
                missing.append("VAULT_TOKEN")
            elif self.avp_auth_type == AuthType.APPROLE:
                if not self.avp_role_id:
                    missing.append("AVP_ROLE_ID")
                if not self.avp_secret_id:
                    missing.append("AVP_SECRET_ID")
            elif self.avp_auth_type == AuthType.GITHUB and not self.avp_github_token:
                missing.append("AVP_GITHUB_TOKEN")
            elif self.avp_auth_type == AuthType.K8S and not self.avp_k8s_role:
                missing.append("AVP_K8S_ROLE")
        elif self.avp_type == BackendType.IBM_SECRETS_MANAGER:
            if not self.avp_ibm_api_key:
                missing.append("AVP_IBM_API_KEY")
            if not self.avp_ibm_instance_url:
                missing.append("AVP_IBM_INSTANCE_URL")

        if missing:
            raise ConfigurationError(
                f"{self.avp_type.value} backend requires: {', '.join(missing)}",
                {"backend": self.avp_type.value, "missing": missing},
            )


def load_settings(config_path: str | Path | None = None) -> Settings:
    """
    Build settings from the environment plus an optional config file.

    YAML and JSON files are read as a flat mapping whose keys are the
    environment variable names (case insensitive); their values take
    precedence over the environment. Any other file is treated as an
    env-file and follows dotenv precedence.

    Args:
        config_path: Optional path to a YAML, JSON or env-file

    Returns:
        Loaded Settings

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    try:
        if config_path is None:
            return Settings()

        path = Path(config_path)
        if not path.is_file():
            raise ConfigurationError(f"config file not found: {path}", {"path": str(path)})

        if path.suffix.lower() in (".yaml", ".yml", ".json"):
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"could not parse config file {path}: {e}", {"path": str(path)}) from e
            if not isinstance(data, dict):
                raise ConfigurationError(f"config file {path} must contain a mapping", {"path": str(path)})
            return Settings(**{str(k).lower(): v for k, v in data.items()})

        return Settings(_env_file=path)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e
