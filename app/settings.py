from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PS_", env_file=".env", extra="ignore")

    service_name: str = "pii-shield"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    policy_path: str = "configs/policy.yaml"

    # OpenAI-compatible generation service that only ever receives masked text.
    upstream_base_url: str = "http://generator:8000"
    upstream_model: str = "default"
    upstream_api_key: str | None = None
    upstream_timeout_s: float = 60.0


settings = Settings()
