"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class BigQuerySettings(BaseSettings):
    """BigQuery client configuration."""

    credentials_path: str = Field(default="./secrets", description="Directory holding the service account key file")
    key_file_name: str = Field(default="keyfile.json", description="Key file name inside credentials_path")
    project_id: str = Field(default="", description="Google Cloud project the client bills to")
    location: Optional[str] = Field(default=None, description="Default location for datasets and jobs")
    job_timeout_seconds: Optional[float] = Field(default=None, description="Max wait on a job; None waits indefinitely")

    class Config:
        env_prefix = "BIGQUERY_"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file_path: Optional[str] = Field(default=None)

    class Config:
        env_prefix = "LOG_"


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="Warehouse Connector")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    bigquery: BigQuerySettings = BigQuerySettings()
    logging: LoggingSettings = LoggingSettings()

    class Config:
        env_prefix = "APP_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "allow"


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings
