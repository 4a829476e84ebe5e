import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

MIB = 1024 * 1024


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the app.yaml path, honouring FANVIEW_CONFIG."""
    override = os.environ.get("FANVIEW_CONFIG")
    if override:
        return Path(override)
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./fanview.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = True
    echo: bool = False
    # Create tables on startup instead of running migrations (dev and tests)
    create_all: bool = False


class UploadConfig(BaseModel):
    """Local upload storage configuration."""

    root: str = "uploads"
    public_prefix: str = "/uploads"
    max_image_size: int = 5 * MIB
    max_content_size: int = 100 * MIB
    folder_suffix: Literal["random", "identifier"] = "identifier"
    folder_name_attempts: int = 5


class AuthConfig(BaseModel):
    """Token lifetimes and password hashing cost."""

    token_ttl: int = 7 * 24 * 3600
    verification_ttl: int = 24 * 3600
    reset_ttl: int = 3600
    bcrypt_rounds: int = 12
    min_password_length: int = 6


class EmailConfig(BaseModel):
    """Outbound SMTP configuration."""

    enabled: bool = False
    host: str = "localhost"
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    sender: str = "Fanview <no-reply@fanview.local>"
    timeout: int = 10


class BillingConfig(BaseModel):
    """Subscription pricing and wallet top-up bounds."""

    subscription_price: float = 5.00
    subscription_days: int = 30
    min_topup: float = 1
    max_topup: float = 1000


class CORSSettings(BaseModel):
    """Allowed cross-origin callers."""

    allow_origins: list[str] = ["http://localhost:5173", "http://localhost:5174"]
    allow_credentials: bool = True


class RateLimitConfig(BaseModel):
    """Per-IP rate limiting configuration."""

    enabled: bool = True
    requests_per_window: int = 100
    auth_requests_per_window: int = 20
    window_seconds: float = 900
    paths: dict[str, int] = {}


class SecurityHeadersConfig(BaseModel):
    """Security response headers configuration."""

    enabled: bool = True
    content_security_policy: str | None = (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "script-src 'self'; img-src 'self' data: https:"
    )
    x_content_type_options: str = "nosniff"
    x_frame_options: str = "DENY"
    referrer_policy: str = "strict-origin-when-cross-origin"
    cross_origin_resource_policy: str = "cross-origin"

    def build_headers(self) -> list[tuple[bytes, bytes]]:
        """Encode the non-CSP headers as ASGI header pairs."""
        pairs = [
            ("x-content-type-options", self.x_content_type_options),
            ("x-frame-options", self.x_frame_options),
            ("referrer-policy", self.referrer_policy),
            ("cross-origin-resource-policy", self.cross_origin_resource_policy),
        ]
        return [(name.encode(), value.encode()) for name, value in pairs if value]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    debug: bool = False
    environment: str = "development"
    secret_key: str
    frontend_url: str = "http://localhost:5173"
    # Include debug payloads in error responses; follows debug when unset
    expose_error_details: bool | None = None

    db: DatabaseConfig = DatabaseConfig()
    uploads: UploadConfig = UploadConfig()
    auth: AuthConfig = AuthConfig()
    email: EmailConfig = EmailConfig()
    billing: BillingConfig = BillingConfig()
    cors: CORSSettings = CORSSettings()
    rate_limit: RateLimitConfig = RateLimitConfig()
    security_headers: SecurityHeadersConfig = SecurityHeadersConfig()

    @model_validator(mode="after")
    def _default_error_details(self):
        if self.expose_error_details is None:
            self.expose_error_details = self.debug
        return self

    @property
    def upload_root(self) -> Path:
        return Path(self.uploads.root)


_SECTIONS: dict[str, type[BaseModel]] = {
    "db": DatabaseConfig,
    "uploads": UploadConfig,
    "auth": AuthConfig,
    "email": EmailConfig,
    "billing": BillingConfig,
    "cors": CORSSettings,
    "rate_limit": RateLimitConfig,
    "security_headers": SecurityHeadersConfig,
}

_TOP_LEVEL = ("debug", "environment", "frontend_url", "expose_error_details")


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    # First create base settings from .env
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}

    for name, model in _SECTIONS.items():
        if name in app_config:
            updates[name] = model(**app_config[name])

    for name in _TOP_LEVEL:
        if name in app_config:
            updates[name] = app_config[name]

    if not updates:
        return base_settings

    merged = base_settings.model_copy(update=updates)
    if "expose_error_details" not in app_config and "debug" in app_config:
        merged.expose_error_details = bool(app_config["debug"])
    return merged
