# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List, Optional
from pathlib import Path

class Settings(BaseSettings):
    # Storage settings
    # Any SQLAlchemy async URL works (sqlite+aiosqlite, postgresql+asyncpg, ...)
    db_url: str = "sqlite+aiosqlite:///data/judbox.db"
    db_echo: bool = False

    # Auth (JWT bearer tokens; "sub" = owner id, "email" = display identity)
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 12

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:8000"

    # Export / report paging
    # Rows per page when draining a table for CSV or PDF output.
    csv_page_size: int = 1000

    # Box numbers per "in (...)" lookup. Keeps us below the backend's
    # query-parameter limits.
    destination_chunk_size: int = 800

    # Default page size for the on-screen report listings.
    report_page_size: int = 50

    # A backend that keeps answering full pages would otherwise loop forever.
    max_page_iterations: int = 100_000

    # Max number of rows rendered into a single PDF report.
    # Protects against OOM when someone prints the whole inventory.
    max_rows_per_pdf: int = 5000

    # ---- Report header ----
    report_title: str = "10ª Zona Eleitoral - Guarabira"
    # Timestamps on reports are printed in local time
    report_timezone: str = "America/Fortaleza"
    # Optional PNG/JPEG drawn at the top-left of every PDF report
    report_logo_path: Optional[str] = Field(
        default=None,
        description="Path to the coat of arms image used in PDF headers",
    )

    # New boxes land here unless the operator says otherwise
    default_localizacao: str = "Guarabira"

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
