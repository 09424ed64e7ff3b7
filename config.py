"""Application settings loaded from the environment (.env supported)."""
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

DEFAULT_FALLBACK_MODELS = ("gemini-2.5-pro", "gemini-1.5-pro", "text-bison-001")
DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
)


def _split_csv(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration."""

    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    fallback_models: Tuple[str, ...] = DEFAULT_FALLBACK_MODELS
    rest_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    max_retries: int = 4
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 15.0
    request_timeout_seconds: float = 60.0
    temperature: float = 0.4
    debug_log_raw_model_response: bool = False

    database_url: str = "sqlite:///./finance_advisor.db"
    instance_connection_name: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_name: Optional[str] = None

    currency_symbol: str = "₹"
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    @property
    def candidate_models(self) -> List[str]:
        """First model (overridable) followed by the fallback chain, without repeats."""
        ordered: List[str] = []
        for model in (self.gemini_model, *self.fallback_models):
            if model and model not in ordered:
                ordered.append(model)
        return ordered

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL") or "gemini-2.5-flash",
            fallback_models=_split_csv(os.getenv("GEMINI_FALLBACK_MODELS"), DEFAULT_FALLBACK_MODELS),
            rest_base_url=os.getenv(
                "GEMINI_REST_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
            ).rstrip("/"),
            max_retries=int(os.getenv("GEMINI_MAX_RETRIES", "4")),
            base_delay_seconds=float(os.getenv("GEMINI_BASE_DELAY_SECONDS", "0.5")),
            max_delay_seconds=float(os.getenv("GEMINI_MAX_DELAY_SECONDS", "15")),
            request_timeout_seconds=float(os.getenv("GEMINI_REQUEST_TIMEOUT_SECONDS", "60")),
            temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.4")),
            debug_log_raw_model_response=_env_bool(os.getenv("DEBUG_LOG_RAW_MODEL_RESPONSE")),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./finance_advisor.db"),
            instance_connection_name=os.getenv("INSTANCE_CONNECTION_NAME") or None,
            db_user=os.getenv("DB_USER"),
            db_password=os.getenv("DB_PASSWORD"),
            db_name=os.getenv("DB_NAME"),
            currency_symbol=os.getenv("CURRENCY_SYMBOL", "₹"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS"), DEFAULT_CORS_ORIGINS),
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
