import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class Settings(BaseModel):
    """Process-wide configuration, built once and passed to every entry point."""

    gemini_api_key: Optional[str] = None
    remote_mode: str = Field(default="direct", pattern="^(direct|proxied)$")
    api_base_url: str = DEFAULT_API_BASE_URL
    relay_url: str = "http://127.0.0.1:8000/api/geminiHandler"

    image_model: str = "gemini-2.5-flash-image-preview"
    style_model: str = "gemini-2.0-flash-exp"

    # Both deadlines stay under the hosting platform's 60s hard limit.
    request_timeout: float = Field(default=55.0, gt=0)
    relay_timeout: float = Field(default=55.0, gt=0)

    max_retries: int = Field(default=2, ge=0)
    retry_backoff: float = Field(default=1.0, ge=0)
    default_temperature: float = 0.5

    max_upload_bytes: int = 10 * 1024 * 1024
    enhance_images: bool = True
    enhance_max_dimension: int = 800
    compress_max_dimension: int = 1280
    target_bytes: int = 1200 * 1024
    initial_quality: float = 0.8
    min_quality: float = 0.4
    quality_step: float = 0.1
    contrast_factor: float = 1.1
    skin_strength: float = 0.3
    compress_target_bytes: int = int(1.5 * 1024 * 1024)
    compress_quality: float = 0.75
    compress_fallback_quality: float = 0.6

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @model_validator(mode="after")
    def _check_deadlines(self):
        if self.request_timeout > self.relay_timeout:
            raise ValueError("request_timeout must not exceed relay_timeout")
        if self.min_quality > self.initial_quality:
            raise ValueError("min_quality must not exceed initial_quality")
        return self


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(**overrides) -> Settings:
    """Read settings from the environment (and a .env file when present)."""
    load_dotenv()
    values = {
        "gemini_api_key": os.getenv("GEMINI_API_KEY") or None,
        "remote_mode": os.getenv("TRYON_REMOTE_MODE", "direct").strip().lower(),
        "api_base_url": os.getenv("GEMINI_API_BASE_URL", DEFAULT_API_BASE_URL),
        "relay_url": os.getenv("TRYON_RELAY_URL", "http://127.0.0.1:8000/api/geminiHandler"),
        "enhance_images": _env_flag("TRYON_ENHANCE_IMAGES", True),
        "cors_origins": [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    }
    for key, env_name in (
        ("image_model", "TRYON_IMAGE_MODEL"),
        ("style_model", "TRYON_STYLE_MODEL"),
    ):
        if os.getenv(env_name):
            values[key] = os.getenv(env_name)
    for key, env_name in (
        ("request_timeout", "TRYON_REQUEST_TIMEOUT"),
        ("relay_timeout", "TRYON_RELAY_TIMEOUT"),
        ("retry_backoff", "TRYON_RETRY_BACKOFF"),
    ):
        if os.getenv(env_name):
            values[key] = float(os.getenv(env_name))
    if os.getenv("TRYON_MAX_RETRIES"):
        values["max_retries"] = int(os.getenv("TRYON_MAX_RETRIES"))
    values.update(overrides)
    return Settings(**values)
