from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import json
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[2]

STORAGE_BACKENDS = ("database", "memory")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./hondana.db"

    # Storage implementation selected at startup: "database" or "memory"
    STORAGE_BACKEND: str = "database"

    # CORS - can be JSON string or comma-separated string
    CORS_ORIGINS: str = '["http://localhost:3000", "http://localhost:5173"]'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Image uploads
    UPLOAD_DIR: str = str(BACKEND_DIR / "uploads")
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Optional CSV loaded into the catalog on startup
    SEED_CSV_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        # Load from backend/.env (relative to this file's parent's parent)
        env_file=str(BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore unknown environment variables (like VITE_*)
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.STORAGE_BACKEND = self.STORAGE_BACKEND.strip().lower()
        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"STORAGE_BACKEND={self.STORAGE_BACKEND!r} is not supported. "
                f"Use one of: {', '.join(STORAGE_BACKENDS)}"
            )

        if self.STORAGE_BACKEND == "database" and not self.DATABASE_URL.strip():
            raise RuntimeError(
                "DATABASE_URL is not set. Create backend/.env with DATABASE_URL=sqlite:///./hondana.db "
                "or a postgresql:// URL, or set STORAGE_BACKEND=memory"
            )

    def get_masked_database_url(self) -> str:
        """Return DATABASE_URL with password masked for logging."""
        try:
            from urllib.parse import urlparse, urlunparse
            parsed = urlparse(self.DATABASE_URL)
            if not parsed.password:
                return self.DATABASE_URL
            masked_netloc = f"{parsed.username}:***@{parsed.hostname}"
            if parsed.port:
                masked_netloc += f":{parsed.port}"
            return urlunparse((
                parsed.scheme,
                masked_netloc,
                parsed.path,
                parsed.params,
                parsed.query,
                parsed.fragment
            ))
        except ValueError:
            # Fallback: just show scheme and host
            return f"{self.DATABASE_URL.split('://')[0]}://<user>:***@{self.DATABASE_URL.split('@')[-1]}"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS from JSON string or comma-separated string."""
        if not self.CORS_ORIGINS:
            return ["http://localhost:3000", "http://localhost:5173"]

        try:
            # Try parsing as JSON first
            parsed = json.loads(self.CORS_ORIGINS)
            if isinstance(parsed, list):
                return parsed
            # If it's a string, treat as single origin
            return [str(parsed)]
        except (json.JSONDecodeError, TypeError):
            # Fall back to comma-separated string
            origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
            return origins if origins else ["http://localhost:3000", "http://localhost:5173"]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
