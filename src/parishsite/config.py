from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from parishsite.errors import ConfigurationError


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    production: bool = False  # Enables Secure cookies and SameSite=Strict on the session cookie
    trust_proxy: bool = False  # Read client address and host from X-Forwarded-* headers

    # Secrets: the process refuses to start without them
    session_secret_key: str = Field(min_length=16)
    admin_password: str = Field(min_length=1)  # Plaintext or a bcrypt hash ("$2b$...")
    admin_totp_secret: str = Field(min_length=16)  # Base32, see `parishsite-totp`

    database_url: str | None = None  # mongodb://host/db; unset keeps sessions in memory (single process only)
    content_path: str = "content"  # Directory holding events.json and team.json

    site_origins: list[str] = []  # Extra origins allowed to post to admin routes
    cors_origins: list[str] = []

    session_idle_minutes: int = Field(default=15, gt=0)
    trusted_device_days: int = Field(default=30, gt=0)
    login_rate_limit_attempts: int = Field(default=10, gt=0)
    login_rate_limit_window_minutes: int = Field(default=15, gt=0)

    model_config = {
        "env_file": [".env"],
        "env_prefix": "PARISHSITE_",
        "extra": "ignore",
        "frozen": True,
    }


def load_config() -> Config:
    """Load configuration, failing fast when a required secret is missing."""
    try:
        return Config()
    except PydanticValidationError as e:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in e.errors()})
        raise ConfigurationError(f"Invalid or missing settings: {', '.join(fields)}") from e
