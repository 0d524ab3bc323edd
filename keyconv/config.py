"""Package configuration."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from keyconv.core.curves import CipherKind, get_curve


class Settings(BaseSettings):
    """Settings loaded from ``KEYCONV_*`` environment variables."""

    # Keypair defaults
    default_cipher: str = CipherKind.RSA.value
    default_rsa_key_length: int = 2048
    default_ec_curve: str = "prime256v1"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # JSON lines for log aggregation

    model_config = SettingsConfigDict(
        env_prefix="KEYCONV_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_cipher")
    @classmethod
    def _check_cipher(cls, value: str) -> str:
        value = value.lower()
        if value not in {c.value for c in CipherKind}:
            raise ValueError(f"Unsupported cipher '{value}'. Supported ciphers are: rsa and ec.")
        return value

    @field_validator("default_ec_curve")
    @classmethod
    def _check_curve(cls, value: str) -> str:
        if get_curve(value) is None:
            raise ValueError(f"Unknown EC curve '{value}'")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level '{value}'")
        return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
