"""
Configuration for the VATUSA training record sync.

Provides a pydantic-settings model read from VZAU_-prefixed environment
variables, with fail-fast validation and sensible defaults. Keyword
arguments passed to the model take precedence over the environment.
"""

from typing import Optional
import logging

from pydantic import Field, field_validator, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger('vzau.config')

VALID_INTERVALS = ('never', 'hourly', 'daily', 'weekly')
VALID_LOG_LEVELS = ('trace', 'debug', 'info', 'warning', 'error')


class TrainingSyncConfig(BaseSettings):
    """
    Training record sync configuration with validation.

    Optional integration:
        vatusa_api_key: VATUSA facility API key. When absent the sync is
                        skipped rather than failing.

    Tunables:
        vatusa_base_url: VATUSA API root (default: https://api.vatusa.net/v2)
        facility_id: Our facility code (default: ZAU)
        database_path: SQLite training session database
        data_dir: Directory for scheduler state and the run lock
        request_timeout: HTTP timeout in seconds (default: 30.0, range: 1.0-120.0)
        max_retries: Retries for temporary API errors (default: 3, range: 0-10)
        retry_base_delay: Backoff base delay in seconds (default: 2.0, range: 0.0-60.0)
        sync_interval: never, hourly, daily, weekly (default: daily)
        log_level: trace, debug, info, warning, error (default: info)
        json_logs: Emit structured JSON log lines (default: False)
    """

    model_config = SettingsConfigDict(env_prefix="VZAU_", extra="ignore")

    enabled: bool = True

    vatusa_api_key: Optional[str] = None
    vatusa_base_url: str = "https://api.vatusa.net/v2"
    facility_id: str = "ZAU"

    database_path: str = "data/training.db"
    data_dir: str = "data"

    request_timeout: float = Field(default=30.0, ge=1.0, le=120.0)
    max_retries: int = Field(default=3, ge=0, le=10)
    retry_base_delay: float = Field(default=2.0, ge=0.0, le=60.0)

    sync_interval: str = Field(
        default="daily",
        description="How often the sync may run: never, hourly, daily, weekly"
    )
    log_level: str = "info"
    json_logs: bool = False

    @field_validator('vatusa_api_key', mode='before')
    @classmethod
    def validate_api_key(cls, v):
        """Blank API keys mean 'not configured'."""
        if v is None:
            return None
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator('vatusa_base_url', mode='after')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate vatusa_base_url is a valid HTTP/HTTPS URL."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('vatusa_base_url must start with http:// or https://')
        return v.rstrip('/')  # Normalize: remove trailing slash

    @field_validator('facility_id', mode='after')
    @classmethod
    def validate_facility_id(cls, v: str) -> str:
        """Facility codes are three letters or digits, stored uppercase."""
        v = v.strip().upper()
        if len(v) != 3 or not v.isalnum():
            raise ValueError(f"facility_id must be a 3 character code, got: {v}")
        return v

    @field_validator('sync_interval', mode='before')
    @classmethod
    def validate_sync_interval(cls, v):
        """Validate sync_interval is one of: never, hourly, daily, weekly."""
        if isinstance(v, str) and v.lower() in VALID_INTERVALS:
            return v.lower()
        raise ValueError(f"sync_interval must be one of {VALID_INTERVALS}, got: {v}")

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log_level is a known level name."""
        if isinstance(v, str) and v.lower() in VALID_LOG_LEVELS:
            return v.lower()
        raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got: {v}")

    @field_validator('enabled', 'json_logs', mode='before')
    @classmethod
    def validate_booleans(cls, v):
        """Ensure boolean fields are actual booleans, not truthy strings."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lower = v.lower()
            if lower in ('true', '1', 'yes'):
                return True
            if lower in ('false', '0', 'no'):
                return False
            raise ValueError(f"Invalid boolean value: {v}")
        raise ValueError(f"Expected boolean, got {type(v).__name__}")

    @property
    def has_api_key(self) -> bool:
        return bool(self.vatusa_api_key)

    def masked_api_key(self) -> str:
        """API key safe for logs."""
        key = self.vatusa_api_key
        if not key:
            return '<not set>'
        if len(key) > 8:
            return key[:4] + '****' + key[-4:]
        return '****'

    def log_config(self) -> None:
        """Log configuration with masked API key."""
        log.info(
            f"Training sync config: facility={self.facility_id}, "
            f"url={self.vatusa_base_url}, api_key={self.masked_api_key()}, "
            f"database={self.database_path}, data_dir={self.data_dir}, "
            f"interval={self.sync_interval}, timeout={self.request_timeout}s, "
            f"max_retries={self.max_retries}, enabled={self.enabled}"
        )
        if not self.has_api_key:
            log.info("No VATUSA API key configured; training record sync will be skipped")


def validate_config(config_dict: dict) -> tuple[Optional[TrainingSyncConfig], Optional[str]]:
    """
    Validate configuration dictionary and return TrainingSyncConfig or error message.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Tuple of (TrainingSyncConfig, None) on success,
        or (None, error_message) on validation failure
    """
    try:
        config = TrainingSyncConfig(**config_dict)
        return (config, None)
    except ValidationError as e:
        # Extract user-friendly error messages
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            msg = error['msg']
            errors.append(f"{field}: {msg}")
        error_message = '; '.join(errors)
        return (None, error_message)


# Re-export ValidationError for external use
__all__ = ['TrainingSyncConfig', 'validate_config', 'ValidationError']
