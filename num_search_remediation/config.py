"""
Configuration management using Pydantic settings.

Loads configuration from environment variables and .env file.
"""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory where this config file is located
_CONFIG_DIR = Path(__file__).parent


class Settings(BaseSettings):
    """Remediation job configuration."""

    model_config = SettingsConfigDict(
        env_file=_CONFIG_DIR / ".env",
        env_prefix="REMEDIATION_",
        case_sensitive=False,
        extra="ignore",
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "finac_crm"
    collection_name: str = "jobs"

    # Scan settings
    batch_size: int = 1  # Small batches keep server-side cursor hold time short
    no_cursor_timeout: bool = True
    progress_every: int = 5

    # Audit log sinks
    log_dir: str = "."
    updated_log: str = "updated_ids.log"
    skipped_log: str = "skipped_ids.log"
    error_log: str = "error_ids.log"
    cursor_error_log: str = "cursor_error.log"
    summary_log: str = "summary.log"

    # Local SQLite for run history
    progress_db_path: str = "remediation_runs.db"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"

    @property
    def sink_names(self) -> list[str]:
        """All audit sink file names, in truncation order."""
        return [
            self.updated_log,
            self.skipped_log,
            self.error_log,
            self.summary_log,
            self.cursor_error_log,
        ]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
