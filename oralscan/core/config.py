# oralscan/core/config.py
import os
import json
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict
from typing import Optional, List, Dict, Any
from functools import lru_cache


class ConfigurationError(RuntimeError):
    """Raised at startup when the process cannot be configured."""


REQUIRED_SERVICE_ACCOUNT_FIELDS = [
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "client_id",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "Oral Screening API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings (required)
    DATABASE_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 300

    # AI Settings
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    INFERENCE_TIMEOUT_SECONDS: float = 30.0
    INFERENCE_MAX_ATTEMPTS: int = 2
    DISCONNECT_POLL_SECONDS: float = 0.5

    # Identity provider (service account JSON document)
    FIREBASE_SERVICE_ACCOUNT: str = ""

    # File Upload Settings
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/png", "image/gif", "image/webp"]
    INLINE_IMAGE_REFERENCES: bool = True

    # Auth
    REQUIRE_AUTH_FOR_ANALYSIS: bool = True

    # CORS Settings
    ALLOWED_ORIGINS: str = "*"

    # Middleware settings
    GZIP_MIN_SIZE: int = 500

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 30
    REDIS_URL: Optional[str] = None

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def max_file_size_mb(self) -> int:
        return self.MAX_FILE_SIZE // (1024 * 1024)

    def missing_required(self) -> List[str]:
        required = {
            "DATABASE_URL": self.DATABASE_URL,
            "GEMINI_API_KEY": self.GEMINI_API_KEY,
            "FIREBASE_SERVICE_ACCOUNT": self.FIREBASE_SERVICE_ACCOUNT,
        }
        return [name for name, value in required.items() if not (value or "").strip()]

    def ensure_required(self) -> None:
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

    def service_account_info(self) -> Dict[str, Any]:
        """Parse and validate the Firebase service account document."""
        try:
            info = json.loads(self.FIREBASE_SERVICE_ACCOUNT)
        except json.JSONDecodeError:
            raise ConfigurationError(
                "Failed to parse FIREBASE_SERVICE_ACCOUNT. Please ensure it contains valid JSON."
            )
        if not isinstance(info, dict):
            raise ConfigurationError("FIREBASE_SERVICE_ACCOUNT must be a JSON object")

        missing = [field for field in REQUIRED_SERVICE_ACCOUNT_FIELDS if not info.get(field)]
        if missing:
            raise ConfigurationError(
                f"Invalid service account: Missing required fields: {', '.join(missing)}"
            )
        # Keys pasted through env files often carry escaped newlines
        info["private_key"] = info["private_key"].replace("\\n", "\n")
        return info


@lru_cache()
def get_settings() -> Settings:
    return Settings()


