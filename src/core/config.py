"""
Cloudbot Classifier Coordinator - Application Configuration

Patterns Applied:
- Pydantic Settings with SettingsConfigDict
- Environment variable prefix CLOUDBOT_ for the coordinator service
- Explicit CoordinatorConfig handed to each coordinator (no module-level state)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from src.classifiers.coordinator import CoordinatorConfig

DEFAULT_NLC_URL = "https://gateway.watsonplatform.net/natural-language-classifier/api"
DEFAULT_CLASSIFIER_NAME = "cloudbot-obj-storage-classifier"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with CLOUDBOT_ prefix.
    Example: CLOUDBOT_NLC_USERNAME=user, CLOUDBOT_SEARCH_RESULT_LIMIT=5
    """

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8083

    # Application metadata
    service_name: str = "cloudbot-classifier-coordinator"
    version: str = "0.1.0"
    environment: str = "development"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    # Natural language classifier service
    nlc_url: str = DEFAULT_NLC_URL
    nlc_username: str = ""
    nlc_password: str = ""
    request_timeout: float = 30.0

    # Image metadata database (training documents)
    cloudant_username: str = ""
    cloudant_password: str = ""
    cloudant_db_name: str = ""
    cloudant_host: str | None = None

    # Classifier lifecycle
    classifier_name: str = DEFAULT_CLASSIFIER_NAME
    training_frequency_ms: int = 60 * 60 * 1000

    # Search tuning
    search_confidence_min: float = 0.0
    search_result_limit: int = 3

    # Training data limits
    text_length_limit: int = 1024
    min_records: int = 5
    max_records: int = 15000
    max_classes: int = 500

    # Tracing configuration
    tracing_enabled: bool = True
    tracing_console_export: bool = False

    model_config = SettingsConfigDict(
        env_prefix="CLOUDBOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def nlc_configured(self) -> bool:
        """True when every credential needed to reach the classifier service is set."""
        return bool(self.nlc_url and self.nlc_username and self.nlc_password)

    @property
    def cloudant_configured(self) -> bool:
        return bool(self.cloudant_username and self.cloudant_password and self.cloudant_db_name)

    def coordinator_config(self) -> CoordinatorConfig:
        """Build the coordinator configuration from these settings."""
        from src.classifiers.coordinator import CoordinatorConfig

        return CoordinatorConfig(
            classifier_name=self.classifier_name,
            training_frequency_ms=self.training_frequency_ms,
            confidence_min=self.search_confidence_min,
            result_limit=self.search_result_limit,
            min_records=self.min_records,
            max_records=self.max_records,
            call_timeout=self.request_timeout,
        )


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance with values from environment
    """
    return Settings()
