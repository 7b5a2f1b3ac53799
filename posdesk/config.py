from functools import lru_cache
from typing import Annotated, List

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="POSDesk Sales Service")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )
    currency: str = Field(default="SAR")
    currency_precision: int = Field(default=2, ge=0, le=4)
    invoice_due_days: int = Field(default=30, ge=0)

    smtp_host: str | None = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_user: str | None = Field(default=None)
    smtp_password: str | None = Field(default=None)
    smtp_secure: bool = Field(default=False)
    smtp_timeout: float = Field(default=30.0)

    email_gateway_base_url: AnyHttpUrl | None = Field(default=None)
    email_gateway_timeout: float = Field(default=30.0)

    model_config = SettingsConfigDict(env_prefix="POSDESK_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    def missing_smtp_settings(self) -> List[str]:
        """Return the names of SMTP variables that still need a value."""

        missing = []
        if not self.smtp_host:
            missing.append("POSDESK_SMTP_HOST")
        if not self.smtp_user:
            missing.append("POSDESK_SMTP_USER")
        if not self.smtp_password:
            missing.append("POSDESK_SMTP_PASSWORD")
        return missing


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
