# messaging_api/config/settings.py
import os
from urllib.parse import quote_plus, urlsplit
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    # Full URL override (e.g. sqlite:///./messages.db); wins over the db_* fields
    db_url: str | None = None

    # PostgreSQL
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "freelance"
    db_user: str = "postgres"
    db_password: str = "postgres"

    environment: str = "development"
    debug: bool = True
    sql_echo: bool = False
    log_level: str = "INFO"

    api_prefix: str = "/api"
    cors_origins_raw: str = os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173",
    )

    jwt_secret: str = os.getenv("JWT_SECRET", "dev-only-secret-change-me-in-production")
    jwt_access_minutes: int = int(os.getenv("JWT_ACCESS_MINUTES", "60"))
    jwt_issuer: str = os.getenv("JWT_ISSUER", "freelance-api")
    jwt_audience: str = os.getenv("JWT_AUDIENCE", "freelance-front")

    files_base_path: str = os.getenv("FILES_BASE_PATH", "./_uploads")
    files_public_base_url: str = os.getenv("FILES_PUBLIC_BASE_URL", "/uploads")
    max_file_size_mb: int = int(os.getenv("MAX_FILE_SIZE_MB", "10"))

    # Empty string disables the whitelist
    allowed_mime_types_raw: str = os.getenv(
        "ALLOWED_MIME_TYPES",
        ",".join(
            [
                # images
                "image/jpeg",
                "image/png",
                "image/gif",
                "image/bmp",
                "image/webp",

                # documents
                "application/pdf",
                "application/msword",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
                "text/plain",

                # archives
                "application/zip",
                "application/x-rar-compressed",
                "application/x-7z-compressed",
            ]
        ),
    )

    edit_window_minutes: int = 15
    message_max_length: int = 5000
    online_window_minutes: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("db_host", "db_name", "db_user", "db_password", mode="before")
    @classmethod
    def strip_strings(cls, v):
        if isinstance(v, str):
            return v.strip().strip('"').strip("'")
        return v

    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url

        user = quote_plus(self.db_user)
        password = quote_plus(self.db_password)
        host = self.db_host
        port = self.db_port
        db = self.db_name

        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db}"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in (self.cors_origins_raw or "").split(",") if o.strip()]

    @property
    def allowed_mime_types(self) -> set[str]:
        raw = (self.allowed_mime_types_raw or "").strip()
        if not raw:
            return set()
        return {p.strip().lower() for p in raw.split(",") if p.strip()}

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def files_url_base(self) -> str:
        # Prefix written into attachment URLs; may be absolute (https://cdn/...)
        return (self.files_public_base_url or "").strip().rstrip("/") or "/uploads"

    @property
    def files_route_prefix(self) -> str:
        # Path the download blueprint is mounted on
        path = urlsplit(self.files_url_base).path.rstrip("/")
        return path if path.startswith("/") else "/uploads"


settings = Settings()
