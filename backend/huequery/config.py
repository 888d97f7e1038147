"""
HueQuery Configuration
Manages environment variables and defaults for the color selection service.
"""
import os
from typing import List, Literal, Optional


class Config:
    """Configuration class for HueQuery services."""

    # Server
    PORT: int = int(os.environ.get("PORT", "3001"))
    ALLOWED_ORIGINS: str = os.environ.get("HUEQUERY_ALLOWED_ORIGINS", "*")

    # Logging
    LOG_LEVEL: str = os.environ.get("HUEQUERY_LOG_LEVEL", "INFO")
    LOG_JSON: bool = os.environ.get("HUEQUERY_LOG_JSON", "false").lower() == "true"

    # Persistence
    DB_PATH: str = os.environ.get("HUEQUERY_DB_PATH", "db.json")
    REDIS_URL: Optional[str] = os.environ.get("HUEQUERY_REDIS_URL")

    # Candidate cache
    CACHE_TTL_SECONDS: int = int(os.environ.get("HUEQUERY_CACHE_TTL_SECONDS", "1800"))  # 30 minutes
    PAGE_SIZE: int = int(os.environ.get("HUEQUERY_PAGE_SIZE", "10"))
    MAX_PAGES: int = int(os.environ.get("HUEQUERY_MAX_PAGES", "10"))
    ANALYSIS_CONCURRENCY: int = int(os.environ.get("HUEQUERY_ANALYSIS_CONCURRENCY", "3"))

    # Timeouts (seconds)
    SEARCH_TIMEOUT: float = float(os.environ.get("HUEQUERY_SEARCH_TIMEOUT", "3.5"))
    IMAGE_TIMEOUT: float = float(os.environ.get("HUEQUERY_IMAGE_TIMEOUT", "4.0"))
    VISION_TIMEOUT: float = float(os.environ.get("HUEQUERY_VISION_TIMEOUT", "12.0"))
    TIMEOUT_TOTAL: float = float(os.environ.get("HUEQUERY_TIMEOUT_TOTAL", "25"))

    # Selection
    FALLBACK_SIZE: int = int(os.environ.get("HUEQUERY_FALLBACK_SIZE", "15"))
    WEIGHT_POLICY: Literal["fixed", "incremental"] = os.environ.get("HUEQUERY_WEIGHT_POLICY", "fixed")

    # Vision classifier
    GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.environ.get("GEMINI_MODEL", "gemini-1.5-flash")

    # Hosts known to refuse hotlinked image downloads
    BLOCKED_DOMAINS = {
        "gun.deals",
        "image.invaluable.com",
        "a.1stdibscdn.com",
        "i.pinimg.com",
        "m.media-amazon.com",
        "cdni.rbth.com",
    }

    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
    )

    @classmethod
    def validate_weight_policy(cls, policy: str) -> bool:
        """Validate weight policy name."""
        return policy in ["fixed", "incremental"]

    @classmethod
    def allowed_origins(cls) -> List[str]:
        """Split the comma separated CORS origin list."""
        origins = [origin.strip() for origin in cls.ALLOWED_ORIGINS.split(",")]
        return [origin for origin in origins if origin] or ["*"]


# Global config instance
config = Config()
