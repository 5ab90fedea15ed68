import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from valtify.errors import ConfigurationError

load_dotenv()


def get_env(key: str, default: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return value


def get_env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_env_list(key: str, default: str) -> list[str]:
    raw = get_env(key, default) or default
    return [item.strip() for item in raw.split(",") if item.strip()]


DATABASE_URL = get_env("DATABASE_URL", "sqlite:///./valtify.db")
DATABASE_TIMEOUT = get_env_int("DATABASE_TIMEOUT", 5)

ARGON2_TIME_COST = get_env_int("ARGON2_TIME_COST", 3)
ARGON2_MEMORY_COST = get_env_int("ARGON2_MEMORY_COST", 65536)
ARGON2_PARALLELISM = get_env_int("ARGON2_PARALLELISM", 4)

SECRET_KEY = get_env("VALTIFY_SECRET_KEY") or get_env("SECRET_KEY")
TOKEN_TTL_MINUTES = get_env_int("TOKEN_TTL_MINUTES", 24 * 60)

VAULT_KEY = get_env("VALTIFY_VAULT_KEY")
KEY_FILE = get_env("VALTIFY_KEY_FILE", ".key_db")

MIN_PASSWORD_LENGTH = get_env_int("MIN_PASSWORD_LENGTH", 6)

CORS_ORIGINS = get_env_list("CORS_ORIGINS", "http://localhost:3000")
HOST = get_env("VALTIFY_HOST", "127.0.0.1")
PORT = get_env_int("VALTIFY_PORT", 8048)

LOG_LEVEL = get_env("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class Settings:
    """Process configuration, built once at startup and passed to create_app()."""

    secret_key: str
    database_url: str = "sqlite:///./valtify.db"
    database_timeout: int = 5
    token_ttl_minutes: int = 24 * 60
    vault_key: str | None = None
    key_file: str = ".key_db"
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 4
    min_password_length: int = 6
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    host: str = "127.0.0.1"
    port: int = 8048
    log_level: str = "INFO"

    def __post_init__(self):
        if self.token_ttl_minutes < 0:
            raise ConfigurationError(
                f"TOKEN_TTL_MINUTES is {self.token_ttl_minutes} - use 0 to disable expiry, not a negative value"
            )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (and .env, if present).

        Raises:
            ConfigurationError: if no signing secret is configured
        """
        if not SECRET_KEY:
            raise ConfigurationError(
                "VALTIFY_SECRET_KEY is not set - refusing to start without a token signing secret"
            )
        return cls(
            secret_key=SECRET_KEY,
            database_url=DATABASE_URL,
            database_timeout=DATABASE_TIMEOUT,
            token_ttl_minutes=TOKEN_TTL_MINUTES,
            vault_key=VAULT_KEY,
            key_file=KEY_FILE,
            argon2_time_cost=ARGON2_TIME_COST,
            argon2_memory_cost=ARGON2_MEMORY_COST,
            argon2_parallelism=ARGON2_PARALLELISM,
            min_password_length=MIN_PASSWORD_LENGTH,
            cors_origins=CORS_ORIGINS,
            host=HOST,
            port=PORT,
            log_level=LOG_LEVEL,
        )


def setup_logging(level: str | None = None) -> logging.Logger:
    """Configure root logging and return the package logger."""
    level_name = (level or LOG_LEVEL or "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level_name, logging.INFO),
    )
    return logging.getLogger("valtify")
