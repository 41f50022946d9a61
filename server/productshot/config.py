# ─────────────────────────────────────────────────────────────────────────────
# Settings — Pydantic v2 BaseSettings
# ─────────────────────────────────────────────────────────────────────────────


from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration sourced from environment variables.

    Uses pydantic-settings v2 (separate package from pydantic).
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env")

    # ── Infrastructure ───────────────────────────────────────────────────────
    port: int = 8080
    environment: str = "development"  # "production" turns on secure cookies

    # ── Upstream providers ───────────────────────────────────────────────────
    # Server-side keys win over a client-supplied apiKey when both are present.
    gemini_api_key: SecretStr = SecretStr("")
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-3-pro-image-preview"

    openai_api_key: SecretStr = SecretStr("")
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o"

    # OAuth refresh glue (the authorization-code redirect lives elsewhere).
    oauth_token_url: str = "https://auth.openai.com/oauth/token"
    openai_client_id: str = ""
    openai_client_secret: SecretStr = SecretStr("")

    # ── Security ─────────────────────────────────────────────────────────────
    # SecretStr prevents the key from leaking into logs, repr(), or
    # model_dump(). Empty string = server access guard disabled.
    api_key: SecretStr = SecretStr("")

    # Comma-separated origins for CORS. Empty string = deny all cross-origin.
    allowed_origins: str = ""

    # ── Rate limiting ────────────────────────────────────────────────────────
    # Fixed-window admission per forwarded client address.
    rate_limit_requests: int = 20
    rate_limit_window_ms: int = 60_000
    rate_limit_sweep_interval_ms: int = 300_000
    # Coarse outer DoS guard (slowapi format), keyed by remote address.
    http_rate_limit: str = "300/minute"

    # ── Limits ───────────────────────────────────────────────────────────────
    upstream_timeout_seconds: float = 120.0
    max_upload_bytes: int = 20 * 1024 * 1024
    diagnostic_max_chars: int = 500

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
