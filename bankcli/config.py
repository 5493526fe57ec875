"""Configuration management using Pydantic Settings"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """CLI configuration loaded from BANK_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="BANK_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Remote banking API
    api_base: str = "https://api.akahu.io/v1"
    app_token: str = ""
    user_token: str = ""

    # Local cache
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".bankcli")
    transaction_cache_file: str = "transaction_cache.json"
    account_cache_file: str = "account_cache.json"
    cache_enabled: bool = False
    transaction_cache_ttl_seconds: int = 3600  # 1 hour
    account_cache_ttl_seconds: int = 14400  # 4 hours

    # HTTP client
    http_timeout_seconds: float = 30.0
    retry_max_retries: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0

    # Service
    service_name: str = "bankcli"
    log_level: str = "WARNING"

    # Transfers
    transfer_allowlist: List[str] = Field(default_factory=list)
    transfer_max_amount: Optional[float] = None
    transfer_poll_interval_seconds: float = 2.0
    transfer_poll_max_attempts: int = 30

    @property
    def transaction_cache_path(self) -> Path:
        return self.config_dir / self.transaction_cache_file

    @property
    def account_cache_path(self) -> Path:
        return self.config_dir / self.account_cache_file


settings = Settings()
