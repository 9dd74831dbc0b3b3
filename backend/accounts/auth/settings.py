"""Auth settings for token signing, account storage, and cookie flags."""

from pydantic import Field
from pydantic_settings import BaseSettings

_DEVELOPMENT_ENVIRONMENTS = {"development", "dev", "local", "test"}


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_", "populate_by_name": True}

    # HMAC secret used to sign session tokens -- required, no default.
    # The application fails to start if AUTH_TOKEN_SECRET is not set.
    token_secret: str = Field(min_length=1)

    # SQLite database file path
    database_path: str = "backend/storage.db"

    # "bcrypt" in production, "simple" only for tests
    password_hasher: str = "bcrypt"
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Deployment environment; the Secure cookie flag is dropped in development
    environment: str = Field(default="production", validation_alias="APP_ENV")

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() in _DEVELOPMENT_ENVIRONMENTS

    @property
    def cookie_secure(self) -> bool:
        return not self.is_development
