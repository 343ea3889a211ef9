from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from repo root if present
ENV_PATH = Path(__file__).resolve().parents[3] / ".env"
if ENV_PATH.exists():
    load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    """Global storefront settings (loaded from env).

    Two halves read from here:
      - Server: the Cart Store / Catalog API (store_dir, cors_*).
      - Client: the cart engine's HTTP client and sync policy (cart_store_*, cart_sync_*).
    """

    # --- service ---
    service_name: str = Field(default="storefront", description="Service name")
    version: str = Field(default="0.1.0", description="Service version")
    environment: str = Field(default="dev", description="Environment name (dev/staging/prod)")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="text", description="text|json")

    # --- CORS ---
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])

    # --- Cart store (server-of-record) persistence ---
    # Empty means workspace/.storefront relative to the current directory.
    store_dir: str = Field(default="", description="Directory holding carts.json")

    # --- Cart engine client ---
    cart_store_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the Cart Store Service",
    )
    cart_store_timeout_seconds: float = Field(
        default=10.0, gt=0.0,
        description="HTTP timeout for a single cart store request",
    )
    # 1 = attempt once, no retry
    cart_sync_max_attempts: int = Field(
        default=1, ge=1, le=10,
        description="Attempts per background sync call",
    )
    cart_sync_backoff_max_seconds: float = Field(
        default=4.0, ge=0.0,
        description="Upper bound of the exponential backoff between attempts",
    )

    # pydantic-settings v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---- Convenience helpers ----
    @property
    def store_root(self) -> Path:
        """Resolve the JSON store directory (relative default is evaluated per call)."""
        if self.store_dir.strip():
            return Path(self.store_dir).expanduser().resolve()
        return Path("workspace/.storefront")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
