"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from docchat.prompts import SYSTEM_PROMPT

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_storage_bucket: str = "document-storage"
    admin_token: str
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_ocr_model: str = "gpt-5-mini"
    openai_store: bool = False
    chat_include_images: bool = False
    system_prompt: str = SYSTEM_PROMPT
    environment: str = _ENVIRONMENT
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
