"""
Registrar - Configuration and settings.

Settings are read from the environment (and a local .env file).
The onboarding wizard never reads settings directly; it receives its
lookup tables through onboarding.forms.WizardConfig.
"""

import logging
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from onboarding.forms import (
    DEFAULT_CODE_LENGTH,
    DEFAULT_FREE_EMAIL_DOMAINS,
    DEFAULT_PRICING_MODELS,
)


class Settings(BaseSettings):
    """
    Application settings.

    Provider credentials are optional so the wizard and its tests can run
    against injected collaborators without any .env present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI (autofill + goal generation)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1-mini"

    # Supabase (verification + registry)
    supabase_url: str | None = None
    supabase_key: str | None = None
    users_table: str = "users"
    agents_table: str = "agents"

    # Application
    registrar_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # REGISTRAR_LOG_PROMPTS=1 - write LLM prompts to prompt_logs/ (dev only)
    registrar_log_prompts: bool = False

    # Wizard lookup tables
    free_email_domains: list[str] = sorted(DEFAULT_FREE_EMAIL_DOMAINS)
    pricing_models: list[str] = list(DEFAULT_PRICING_MODELS)
    verification_code_length: int = DEFAULT_CODE_LENGTH

    @property
    def is_development(self) -> bool:
        return self.registrar_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the CLI and web entry points."""
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
