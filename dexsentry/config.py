from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

from dexsentry.exceptions import ConfigurationError


class Settings(BaseSettings):
    # Solana RPC (Helius is preferred when a key is present)
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    helius_api_key: str = ""
    solana_commitment: str = "confirmed"

    # Third-party data services
    rugcheck_base_url: str = "https://api.rugcheck.xyz"
    birdeye_base_url: str = "https://public-api.birdeye.so"
    birdeye_api_key: str = ""
    http_timeout_seconds: float = 5.0
    risk_report_cache_ttl_seconds: int = 30

    # Scheduler intervals
    position_monitor_interval_seconds: float = 5.0
    price_alert_interval_seconds: float = 60.0
    detector_timeout_seconds: float = 10.0

    # Trailing take-profit (decimal: 0.15 = 15%)
    trailing_activation_pct: float = 0.15
    trailing_stop_pct: float = 0.05

    # Fixed exits, applied by the position monitor (decimal)
    take_profit_pct: float = 0.10
    stop_loss_pct: float = 0.02

    # Trade limits (whole percent)
    max_risk_per_trade_pct: float = 2.0
    max_open_positions: int = 3
    max_daily_loss_pct: float = 6.0

    # Strategy history retained per token (seconds)
    market_history_window_seconds: float = 600.0

    log_level: str = "INFO"

    @field_validator("solana_rpc_url")
    @classmethod
    def check_rpc_scheme(cls, v: str) -> str:
        """RPC endpoint must be an http(s) URL"""
        if not v.startswith("http"):
            raise ValueError("SOLANA_RPC_URL must start with http(s)://")
        return v

    @field_validator(
        "position_monitor_interval_seconds",
        "price_alert_interval_seconds",
        "detector_timeout_seconds",
        "http_timeout_seconds",
        "market_history_window_seconds",
    )
    @classmethod
    def check_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("trailing_activation_pct", "trailing_stop_pct", "take_profit_pct", "stop_loss_pct")
    @classmethod
    def check_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @property
    def rpc_url(self) -> str:
        """Effective RPC endpoint (Helius when an API key is configured)"""
        if self.helius_api_key:
            return f"https://mainnet.helius-rpc.com/?api-key={self.helius_api_key}"
        return self.solana_rpc_url

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


def load_settings(**overrides) -> Settings:
    """
    Build a Settings instance, converting validation failures into ConfigurationError.

    Used by entry points that want a clean startup failure instead of a
    pydantic traceback.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


settings = Settings()
