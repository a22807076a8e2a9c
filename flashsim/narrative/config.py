"""Narrative backend settings, read from FLASHSIM_* variables or a .env file."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class NarrativeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FLASHSIM_",
        env_file=".env",
        extra="ignore",
    )

    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    temperature: float = 0.2
    timeout: float = 20.0  # seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)
