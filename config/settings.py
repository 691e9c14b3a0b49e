"""
Application settings loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ─────────────────────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./connections.db"

    # ── Security Secrets ──────────────────────────────────────────────────
    token_encryption_key: str = ""      # Fernet key for encrypting provider credentials at rest

    # ── Outbound HTTP ────────────────────────────────────────────────────
    http_timeout_seconds: float = 30.0
    network_max_retries: int = 2        # retries on NetworkError only
    network_backoff_seconds: float = 0.5
    network_backoff_multiplier: float = 2.0
    user_agent: str = "ConnectionsHub/1.0.0"

    # ── Connection tool (agent boundary) ─────────────────────────────────
    connection_tool_max_chars: int = 10_000

    # ── Connection lifecycle ─────────────────────────────────────────────
    acknowledge_status_writes: bool = True   # await persistence of connected/error transitions
    retest_on_startup: bool = True

    debug: bool = False

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number ``attempt`` (0-indexed)."""
        return self.network_backoff_seconds * (self.network_backoff_multiplier ** attempt)


config = Settings()
