"""
App Configuration.

This module defines the global application settings using Pydantic Settings.
It loads configuration variables from environment variables (prefixed with
``PATCHGATE_``) and/or a .env file, ensuring typed and validated settings for
the governance tools.

Usage:
    from patchgate.core.config import get_settings

    settings = get_settings()
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TENSION_RULES_PATH = os.path.join(
    os.path.dirname(__file__), "..", "services", "tension", "tension-rules.yaml"
)


class Settings(BaseSettings):
    """
    Application Settings.

    Attributes:
        PROJECT_NAME: The name of the project.
        LOG_LEVEL: Root log level for CLIs and the API.
        CANARY_MATRIX_PATH: Location of the persisted canary matrix document.
        TENSION_RULES_PATH: Declarative tension rule set (YAML).
        PACKAGE_MANIFEST_PATH: Manifest holding the ``patchedDependencies`` map.
    """

    # Core
    PROJECT_NAME: str = "patchgate"
    VERSION: str = "2.0.0"
    LOG_LEVEL: str = "INFO"

    # Governance documents
    CANARY_MATRIX_PATH: str = "config/canary-matrix.yml"
    TENSION_RULES_PATH: str = DEFAULT_TENSION_RULES_PATH
    INVARIANT_DEFINITIONS_PATH: Optional[str] = "config/invariant-definitions.yml"
    DEPENDENCY_LAYERS_PATH: Optional[str] = "config/dependency-layers.yml"
    PACKAGE_MANIFEST_PATH: str = "package.json"
    FEATURE_FLAGS_PATH: Optional[str] = "config/feature-flags.yml"

    # Operator
    OPERATOR_INTERVAL_SECONDS: float = 5.0
    OPERATOR_RESOURCE_DIR: str = "deploy/patches"
    OPERATOR_TARGET_DIR: str = "deploy/targets"
    COSIGN_BINARY: str = "cosign"
    COSIGN_TIMEOUT_SECONDS: float = 60.0

    # Notifications
    SLACK_WEBHOOK_URL: Optional[str] = None
    SLACK_SECURITY_CHANNEL: str = "#security-alerts"

    # Remote feature flag provider
    FLAG_PROVIDER_URL: Optional[str] = None
    FLAG_PROVIDER_TOKEN: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="PATCHGATE_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
