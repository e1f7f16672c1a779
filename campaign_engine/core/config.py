"""
Application Configuration

Centralized configuration management with environment-based settings.
Supports dev, staging, prod and test environments.

Configuration Sources:
    1. YAML files (infra/config/<environment>.yaml)
    2. Environment variables (override YAML, .env is loaded first)

Usage:
    >>> from campaign_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.database.url)
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator
import yaml
import os
from dotenv import load_dotenv

load_dotenv(os.path.join(os.getcwd(), '.env'), override=False)


class DatabaseConfig(BaseModel):
    """Database configuration"""
    backend: str = Field(default_factory=lambda: os.getenv("DB_BACKEND", "postgres"))
    host: str = Field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    port: int = Field(default_factory=lambda: int(os.getenv("DB_PORT", "5432")))
    database: str = Field(default_factory=lambda: os.getenv("DB_NAME", "campaign_engine"))
    username: str = Field(default_factory=lambda: os.getenv("DB_USER", "postgres"))
    password: str = Field(default_factory=lambda: os.getenv("DB_PASSWORD", "postgres"))
    pool_size: int = 20
    max_overflow: int = 10
    echo: bool = False

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v):
        """Validate store backend"""
        allowed = ["postgres", "memory"]
        if v not in allowed:
            raise ValueError(f"Database backend must be one of {allowed}")
        return v

    @property
    def url(self) -> str:
        """Construct database URL"""
        return (
            f"postgresql+asyncpg://{self.username}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class VendorConfig(BaseModel):
    """
    Simulated vendor configuration

    Every send waits uniform(dispatch_jitter) seconds, picks SENT with
    probability success_rate, waits uniform(response_jitter) seconds and
    then reports its receipt. Receipts are posted to callback_url when it
    is set, otherwise applied in process.
    """
    success_rate: float = Field(default_factory=lambda: float(os.getenv("VENDOR_SUCCESS_RATE", "0.9")))
    dispatch_jitter_min: float = 0.0
    dispatch_jitter_max: float = 5.0
    response_jitter_min: float = 1.0
    response_jitter_max: float = 3.0
    callback_url: Optional[str] = Field(default_factory=lambda: os.getenv("VENDOR_CALLBACK_URL"))
    callback_timeout: float = 10.0

    @field_validator("success_rate")
    @classmethod
    def validate_success_rate(cls, v):
        """Validate success probability"""
        if not 0.0 <= v <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def validate_jitter(self):
        """Validate jitter bounds"""
        for name in ("dispatch", "response"):
            low = getattr(self, f"{name}_jitter_min")
            high = getattr(self, f"{name}_jitter_max")
            if low < 0 or high < 0:
                raise ValueError(f"{name} jitter cannot be negative")
            if low > high:
                raise ValueError(f"{name} jitter min must not exceed max")
        return self

    @property
    def dispatch_jitter(self) -> tuple:
        return (self.dispatch_jitter_min, self.dispatch_jitter_max)

    @property
    def response_jitter(self) -> tuple:
        return (self.response_jitter_min, self.response_jitter_max)


class ObservabilityConfig(BaseModel):
    """Observability configuration"""
    # Prometheus
    enable_metrics: bool = True
    metrics_path: str = "/metrics"

    # Logging
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = Field(default_factory=lambda: os.getenv("LOG_FORMAT", "json"))
    log_file: Optional[str] = None


class SecurityConfig(BaseModel):
    """Security configuration"""
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True


class Settings(BaseModel):
    """
    Application settings

    Loads configuration from YAML file and environment variables.
    Environment variables override YAML values.
    """
    # Environment
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "dev"))
    debug: bool = Field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    # Application
    app_name: str = "Campaign Engine"
    app_version: str = "1.0.0"
    api_prefix: str = "/api"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Components
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    vendor: VendorConfig = Field(default_factory=VendorConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value"""
        allowed = ["dev", "staging", "prod", "test"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v


def load_config_file(environment: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Args:
        environment: Environment name (dev, staging, prod, test)

    Returns:
        Configuration dictionary
    """
    config_dir = Path(__file__).parent.parent.parent / "infra" / "config"
    config_file = config_dir / f"{environment}.yaml"

    if not config_file.exists():
        return {}

    with open(config_file, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached singleton)

    Returns:
        Settings instance

    Example:
        >>> settings = get_settings()
        >>> db_url = settings.database.url
    """
    environment = os.getenv("ENVIRONMENT", "dev")

    config = load_config_file(environment)
    config["environment"] = environment

    settings = Settings(**config)

    # Environment variables win over YAML
    if os.getenv("DB_BACKEND"): settings.database.backend = os.getenv("DB_BACKEND")
    if os.getenv("DB_HOST"): settings.database.host = os.getenv("DB_HOST")
    if os.getenv("DB_PORT"): settings.database.port = int(os.getenv("DB_PORT"))
    if os.getenv("DB_NAME"): settings.database.database = os.getenv("DB_NAME")
    if os.getenv("DB_USER"): settings.database.username = os.getenv("DB_USER")
    if os.getenv("DB_PASSWORD"): settings.database.password = os.getenv("DB_PASSWORD")

    if os.getenv("VENDOR_SUCCESS_RATE"):
        settings.vendor.success_rate = float(os.getenv("VENDOR_SUCCESS_RATE"))
    if os.getenv("VENDOR_CALLBACK_URL"):
        settings.vendor.callback_url = os.getenv("VENDOR_CALLBACK_URL")

    return settings
