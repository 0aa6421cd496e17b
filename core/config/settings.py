# Complete settings with ALL required sections
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator
from pydantic import AliasChoices
from enum import Enum
from typing import List


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LoggingSettings(BaseModel):
    # Core logging settings
    level: str = "INFO"
    json_format: bool = True

    # Console logging
    console_enabled: bool = True
    console_json_format: bool = False  # Plain text for console by default

    # File logging
    file_enabled: bool = False
    logs_dir: str = "logs"
    file_max_size: str = "50MB"
    file_backup_count: int = 5

    # Multi-channel logging (file-backed, requires file_enabled)
    multi_channel_enabled: bool = True

    # Redaction
    redact_keys: list[str] = [
        "authorization", "access_token", "api_key", "password", "secret", "token", "set-cookie"
    ]


class APISettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    prefix: str = "/api/v1"
    health_path: str = "/health"

    # CORS settings
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins"
    )
    cors_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        description="Allowed CORS methods"
    )
    cors_headers: List[str] = Field(
        default=["Content-Type", "Authorization", "X-Nonce"],
        description="Allowed CORS headers"
    )

    @field_validator('cors_origins')
    def validate_cors_origins(cls, v):
        """Validate CORS origins configuration"""
        if "*" in v and len(v) > 1:
            raise ValueError("Cannot mix '*' with specific origins")
        return v


class NonceSettings(BaseModel):
    """Replay guard configuration"""
    enabled: bool = True
    header_name: str = "x-nonce"
    ttl_ms: int = 5 * 60 * 1000  # 5 minutes
    cleanup_interval_ms: int = 8 * 60 * 60 * 1000  # 8 hours
    max_size: int = 0  # 0 = unbounded
    protected_prefix: str = "/api"

    @field_validator('header_name')
    def normalize_header_name(cls, v):
        v = v.strip().lower()
        if not v:
            raise ValueError("Nonce header name cannot be empty")
        return v

    @field_validator('ttl_ms')
    def validate_ttl(cls, v):
        if v <= 0:
            raise ValueError("Nonce TTL must be positive")
        return v


class CacheSettings(BaseModel):
    """Upstream response cache"""
    enabled: bool = True
    default_ttl_ms: int = 60 * 1000
    cleanup_interval_ms: int = 60 * 1000
    max_size: int = 1000


class RateLimitSettings(BaseModel):
    enabled: bool = True
    max_requests: int = 100
    window_ms: int = 60 * 1000
    cleanup_interval_ms: int = 60 * 1000


class StockbitSettings(BaseModel):
    """Upstream data provider configuration"""
    base_url: str = "https://exodus.stockbit.com/findata-view"
    order_trade_base_url: str = "https://exodus.stockbit.com/order-trade"
    access_token: str = ""
    use_mock: bool = False
    timeout_seconds: float = 15.0

    # Request constants
    default_page: int = 1
    default_page_size: int = 50
    broker_page_size: int = 150
    transaction_type: str = "TRANSACTION_TYPE_NET"
    market_board: str = "MARKET_BOARD_ALL"
    investor_type: str = "INVESTOR_TYPE_ALL"
    broker_group: str = "GROUP_UNSPECIFIED"


class Settings(BaseSettings):
    """Main application settings, loaded from environment variables"""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    app_name: str = "Broker Radar"
    version: str = "1.0.0"
    environment: Environment = Environment.DEVELOPMENT

    api: APISettings = APISettings()
    nonce: NonceSettings = NonceSettings()
    cache: CacheSettings = CacheSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    stockbit: StockbitSettings = StockbitSettings()
    logging: LoggingSettings = LoggingSettings()

    # --- Legacy flat environment variables ---
    # Prefer STOCKBIT__ACCESS_TOKEN / STOCKBIT__USE_MOCK / API__PORT; these remain for older .env files.
    legacy_access_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("STOCKBIT_ACCESS_TOKEN"),
        description="Flat upstream access token (legacy)",
    )
    legacy_use_mock: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("USE_MOCK"),
        description="Flat mock-mode flag (legacy)",
    )
    legacy_port: int | None = Field(
        default=None,
        validation_alias=AliasChoices("PORT"),
        description="Flat listen port (legacy)",
    )

    @property
    def logs_dir(self) -> str:
        """Get absolute path to logs directory"""
        return self.logging.logs_dir

    def resolve_access_token(self) -> str:
        """Resolve the configured upstream token.

        Precedence:
        - STOCKBIT__ACCESS_TOKEN if non-empty.
        - Else the flat STOCKBIT_ACCESS_TOKEN.
        - Else empty string.
        """
        if self.stockbit.access_token:
            return self.stockbit.access_token
        return self.legacy_access_token or ""

    def is_mock_enabled(self) -> bool:
        if self.legacy_use_mock is not None:
            return bool(self.legacy_use_mock)
        return bool(self.stockbit.use_mock)

    def resolve_port(self) -> int:
        if self.legacy_port is not None:
            return int(self.legacy_port)
        return self.api.port


# No global settings instance - use dependency injection instead
