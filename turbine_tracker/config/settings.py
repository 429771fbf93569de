"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

import re
from datetime import datetime

from eth_utils import is_address
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from turbine_tracker.config.constants import (
    BATCH_DELAY_SECONDS,
    BLOCK_INTERVAL_MS,
    CHAIN_INFO_REFRESH_INTERVAL_SECONDS,
    CONTRACT_ADDRESS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DISPLAY_THRESHOLD,
    DEFAULT_RPC_URL,
    DEFAULT_STAT_THRESHOLD,
    RETRY_DELAY_SECONDS,
    RPC_SWITCH_DELAY_SECONDS,
    RPC_TIMEOUT,
    TOPIC_0,
)
from turbine_tracker.models.enums import ViewMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite+aiosqlite:///turbine_tracker.db"
    database_echo: bool = False

    # Blockchain RPC
    rpc_url: str = DEFAULT_RPC_URL
    rpc_timeout: float = Field(
        default=RPC_TIMEOUT, gt=0, description="RPC HTTP timeout in seconds"
    )

    # Tracked contract
    contract_address: str = CONTRACT_ADDRESS
    topic0: str = TOPIC_0

    # Sync window (naive datetimes are local time)
    sync_start_time: datetime | None = None
    sync_end_time: datetime | None = None

    # Sync loop
    sync_batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        description="Blocks per log request (clamped to >= 1 at use)"
    )
    sync_batch_delay: float = Field(
        default=BATCH_DELAY_SECONDS, ge=0, description="Pause between batches"
    )
    sync_retry_delay: float = Field(
        default=RETRY_DELAY_SECONDS, ge=0, description="Delay before retry"
    )
    sync_max_retries: int | None = Field(
        default=None,
        ge=1,
        description="Consecutive failures before giving up (unset = forever)"
    )
    rpc_switch_delay: float = Field(default=RPC_SWITCH_DELAY_SECONDS, ge=0)
    block_interval_ms: int = Field(default=BLOCK_INTERVAL_MS, gt=0)
    chain_info_refresh_interval: float = Field(
        default=CHAIN_INFO_REFRESH_INTERVAL_SECONDS, gt=0
    )

    # Stats / display
    stat_threshold: float = DEFAULT_STAT_THRESHOLD
    display_threshold: float = DEFAULT_DISPLAY_THRESHOLD
    view_mode: ViewMode = ViewMode.ALL

    # Application
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_sync_window(self) -> 'Settings':
        """Reject an end time that precedes the start time."""
        if (
            self.sync_start_time
            and self.sync_end_time
            and self.sync_end_time < self.sync_start_time
        ):
            raise ValueError("SYNC_END_TIME must not be before SYNC_START_TIME")
        return self

    @field_validator('sync_start_time', 'sync_end_time')
    @classmethod
    def localize_datetime(cls, v: datetime | None) -> datetime | None:
        """Interpret naive datetimes in the local timezone."""
        if v is None:
            return None
        return v.astimezone()

    @field_validator('contract_address')
    @classmethod
    def validate_contract_address(cls, v: str) -> str:
        """Validate contract address."""
        if not v.startswith('0x') or not is_address(v.lower()):
            raise ValueError(f'Invalid contract address format: {v}')
        return v

    @field_validator('topic0')
    @classmethod
    def validate_topic(cls, v: str) -> str:
        """Validate event signature topic."""
        if not re.fullmatch(r'0x[0-9a-fA-F]{64}', v):
            raise ValueError(f'Invalid topic format: {v}')
        return v.lower()

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('sqlite+aiosqlite://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with sqlite+aiosqlite:// '
                'or postgresql+asyncpg://'
            )
        return v


# Global settings instance
settings = Settings()
