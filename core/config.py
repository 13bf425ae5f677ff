from pydantic_settings import BaseSettings
from typing import List, Optional, Union
from pydantic import Field, field_validator
import json
from core import constants


def _parse_json_list(name: str, v):
    """Parses a JSON list passed as an environment string."""
    if isinstance(v, str):
        v = v.strip()
        # Handle accidental copy-paste of "KEY=VALUE"
        if v.startswith(f"{name}="):
            v = v.split("=", 1)[1]
        # Handle surrounding quotes
        v = v.strip("'").strip('"')

        if not v:
            return []
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError as e:
            raise ValueError(f"{name} must be valid JSON: {e}")
        if not isinstance(parsed, list):
            raise ValueError(f"{name} must be a JSON list")
        return parsed
    return v


class Settings(BaseSettings):
    # --- Supabase ---
    SUPABASE_URL: Optional[str] = Field(None, description="Supabase Project URL")
    SUPABASE_KEY: Optional[str] = Field(None, description="Supabase Service Role Key")

    # --- Targets ---
    TARGETS_PATH: str = Field(
        constants.DEFAULT_TARGETS_PATH, description="Path to the targets JSON file"
    )

    # --- Retry ---
    RETRY_COUNT: int = Field(constants.DEFAULT_RETRY_COUNT, ge=1, description="Attempts per cycle")
    RETRY_DELAY: float = Field(
        constants.DEFAULT_RETRY_DELAY, ge=0, description="Delay between attempts in seconds"
    )
    # Global retry-trigger regular expressions
    RETRY_ON_MATCH: Union[List[str], str] = Field(default_factory=list)

    # --- HTTP ---
    HTTP_TIMEOUT: float = Field(constants.DEFAULT_HTTP_TIMEOUT, gt=0, description="Request timeout")
    USER_AGENT: str = Field(constants.DEFAULT_USER_AGENT)
    PROXY_URL: Optional[str] = Field(None, description="HTTP(S) proxy for all requests")
    PROXY_USERNAME: Optional[str] = None
    PROXY_PASSWORD: Optional[str] = None

    # --- Scheduling ---
    SCRAPE_INTERVAL: int = Field(
        constants.DEFAULT_SCRAPE_INTERVAL, gt=0, description="Default interval in seconds"
    )
    PARALLEL_CHECKS: int = Field(
        constants.DEFAULT_PARALLEL_CHECKS, ge=1, description="Concurrently running cycles"
    )

    # --- Diff ---
    DIFF_TIMEOUT: float = Field(constants.DEFAULT_DIFF_TIMEOUT, gt=0)

    # --- Notifications ---
    # Status codes that never trigger an error notification
    NO_ERROR_NOTIFY_ON_STATUS_CODE: Union[List[int], str] = Field(default_factory=list)
    # Webhooks receiving every target's reports
    WEBHOOK_URLS: Union[List[str], str] = Field(default_factory=list)
    # Webhook receiving WARNING+ log records
    ERROR_WEBHOOK_URL: Optional[str] = None

    # --- Logging ---
    TIMEZONE: str = Field(constants.DEFAULT_TIMEZONE, description="Timezone for log timestamps")
    LOG_LEVEL: str = Field(constants.DEFAULT_LOG_LEVEL, description="Logging level")
    LOG_FILE: str = Field(constants.DEFAULT_LOG_FILE, description="Log file path")
    LOG_FORMAT: str = Field(constants.DEFAULT_LOG_FORMAT, description="Log format (text/json)")
    LOG_MAX_BYTES: int = Field(constants.DEFAULT_LOG_MAX_BYTES, description="Max log file size")
    LOG_BACKUP_COUNT: int = Field(constants.DEFAULT_LOG_BACKUP_COUNT, description="Log backup count")

    @field_validator("RETRY_ON_MATCH", mode="before")
    @classmethod
    def parse_retry_on_match(cls, v):
        return [str(p) for p in _parse_json_list("RETRY_ON_MATCH", v)]

    @field_validator("NO_ERROR_NOTIFY_ON_STATUS_CODE", mode="before")
    @classmethod
    def parse_ignored_status_codes(cls, v):
        try:
            return [int(code) for code in _parse_json_list("NO_ERROR_NOTIFY_ON_STATUS_CODE", v)]
        except (TypeError, ValueError) as e:
            raise ValueError(f"NO_ERROR_NOTIFY_ON_STATUS_CODE must hold integers: {e}")

    @field_validator("WEBHOOK_URLS", mode="before")
    @classmethod
    def parse_webhook_urls(cls, v):
        return [str(url) for url in _parse_json_list("WEBHOOK_URLS", v)]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def validate_all(self) -> List[str]:
        """
        Validate all configuration settings.
        Returns a list of warning/error messages.
        """
        errors = []

        # Critical
        if not self.SUPABASE_URL:
            errors.append("❌ SUPABASE_URL is missing")
        if not self.SUPABASE_KEY:
            errors.append("❌ SUPABASE_KEY is missing")

        # URL Validation (Basic)
        if self.SUPABASE_URL and not self.SUPABASE_URL.startswith("https://"):
            errors.append("❌ SUPABASE_URL must start with https://")
        if self.PROXY_URL and not self.PROXY_URL.startswith(("http://", "https://")):
            errors.append("❌ PROXY_URL must start with http:// or https://")

        # Warnings
        if self.RETRY_DELAY >= self.SCRAPE_INTERVAL:
            errors.append("⚠️ RETRY_DELAY is not shorter than SCRAPE_INTERVAL")
        if self.DIFF_TIMEOUT >= self.SCRAPE_INTERVAL:
            errors.append("⚠️ DIFF_TIMEOUT is not shorter than SCRAPE_INTERVAL")
        if not self.WEBHOOK_URLS:
            errors.append("⚠️ WEBHOOK_URLS is empty - only per-target webhooks will be notified")

        return errors


settings = Settings()
