import os
from dotenv import load_dotenv
from typing import Dict, List, Any
from functools import lru_cache

load_dotenv()

STORAGE_BACKENDS = ("memory", "database")
ANALYSIS_BACKENDS = ("http", "mock")


class Settings:
    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str = os.getenv("LOG_FILE", "")

    # Database Settings - SQLite file by default, PostgreSQL in production
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./interview_coach.db")
    DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"
    DATABASE_POOL_SIZE: int = int(os.getenv("DATABASE_POOL_SIZE", "10"))
    DATABASE_MAX_OVERFLOW: int = int(os.getenv("DATABASE_MAX_OVERFLOW", "20"))
    DATABASE_POOL_TIMEOUT: int = int(os.getenv("DATABASE_POOL_TIMEOUT", "30"))
    DATABASE_POOL_RECYCLE: int = int(os.getenv("DATABASE_POOL_RECYCLE", "3600"))

    # Storage Gateway Settings
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "database").lower()  # "memory" or "database"
    STORAGE_WRITE_RETRIES: int = int(os.getenv("STORAGE_WRITE_RETRIES", "3"))

    # Analysis Collaborator Settings
    ANALYSIS_BACKEND: str = os.getenv("ANALYSIS_BACKEND", "http").lower()  # "http" or "mock"
    AI_SERVICE_URL: str = os.getenv("AI_SERVICE_URL", "http://localhost:8001")
    AI_SERVICE_TIMEOUT: float = float(os.getenv("AI_SERVICE_TIMEOUT", "40"))
    ANALYSIS_TIMEOUT_SECONDS: float = float(os.getenv("ANALYSIS_TIMEOUT_SECONDS", "45"))

    # Session Pipeline Settings
    PROCESSING_STALE_SECONDS: int = int(os.getenv("PROCESSING_STALE_SECONDS", "300"))
    INTERVIEW_EXPIRATION_HOURS: int = int(os.getenv("INTERVIEW_EXPIRATION_HOURS", "24"))
    SESSION_TOKEN_PREFIX: str = os.getenv("SESSION_TOKEN_PREFIX", "session")

    # JWT Settings (tokens are issued elsewhere, we only verify them)
    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")

    # CORS Configuration
    CORS_ORIGINS: List[str] = os.getenv("CORS_ORIGINS", "http://localhost:3000,https://localhost:3001").split(",")
    CORS_METHODS: List[str] = os.getenv("CORS_METHODS", "GET,POST,OPTIONS").split(",")

    @property
    def cors_config(self) -> Dict[str, Any]:
        """Get CORS configuration."""
        return {
            "allow_origins": self.CORS_ORIGINS,
            "allow_credentials": True,
            "allow_methods": self.CORS_METHODS,
            "allow_headers": ["Content-Type", "Authorization"],
        }

    @property
    def configured_backends(self) -> Dict[str, str]:
        """Get the storage and analysis backends selected at startup."""
        return {
            "storage": self.STORAGE_BACKEND,
            "analysis": self.ANALYSIS_BACKEND,
        }

    def validate_configuration(self) -> List[str]:
        """Validate configuration and return list of issues."""
        errors = []
        if self.STORAGE_BACKEND not in STORAGE_BACKENDS:
            errors.append(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
        if self.ANALYSIS_BACKEND not in ANALYSIS_BACKENDS:
            errors.append(f"ANALYSIS_BACKEND must be one of {', '.join(ANALYSIS_BACKENDS)}")
        if self.ANALYSIS_BACKEND == "http" and not self.AI_SERVICE_URL:
            errors.append("AI_SERVICE_URL is required when ANALYSIS_BACKEND is 'http'")
        if self.ANALYSIS_TIMEOUT_SECONDS <= 0:
            errors.append("ANALYSIS_TIMEOUT_SECONDS must be positive")
        if self.STORAGE_WRITE_RETRIES < 1:
            errors.append("STORAGE_WRITE_RETRIES must be at least 1")
        if self.ENVIRONMENT == "production" and self.SECRET_KEY.startswith("your-secret-key"):
            errors.append("SECRET_KEY must be changed in production")
        return errors


@lru_cache()
def get_settings():
    return Settings()
