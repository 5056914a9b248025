"""
Configuration management for FolioLedger.
Uses pydantic-settings for type-safe, centralized configuration.
"""

from typing import Optional, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type safety.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore'  # Allow extra fields in .env for flexibility
    )

    # Local storage
    database_url: str = "sqlite:///folio_ledger.db"
    db_echo: bool = False

    # Valuation
    crypto_conversion_rate: float = 34.0  # quote asset (USDT) -> local currency
    crypto_quote_asset: str = "USDT"
    local_currency: str = "TRY"

    # Price feeds
    market_api_url: str = "https://borsa.ramazansancar.com.tr/api/"
    crypto_api_url: str = "https://api.binance.com/api/v3/ticker/price"
    stock_symbol_suffix: str = ".IS"
    http_timeout_seconds: float = 10.0
    price_cache_ttl_seconds: int = 30
    price_fetch_workers: int = 4

    # Auto refresh
    default_refresh_interval: int = 30
    refresh_intervals: Tuple[int, ...] = (15, 30, 60, 300)

    # Destructive actions
    clear_confirmation_word: str = "delete"

    # Sharing
    share_base_url: Optional[str] = None

    @property
    def allowed_refresh_intervals(self) -> Tuple[int, ...]:
        """Refresh intervals (seconds) the user may choose from."""
        return tuple(sorted(set(self.refresh_intervals)))


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global _settings
    _settings = Settings()
    return _settings
