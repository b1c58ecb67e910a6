"""Configuration loading and validation for the image client."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_API_BASE = "https://api.openai.com/v1"


def load_config() -> dict:
    """Load configuration from environment variables."""

    config = {
        # Required API key
        "openai_api_key": os.getenv("OPENAI_API_KEY"),
        "openai_api_base": os.getenv("OPENAI_API_BASE", DEFAULT_API_BASE),
        # Models (edit path is fixed to dall-e-2 by the edits endpoint)
        "edit_model": os.getenv("IMAGE_EDIT_MODEL", "dall-e-2"),
        "generation_model": os.getenv("IMAGE_GENERATION_MODEL", "dall-e-3"),
        # Transport
        "request_timeout": float(os.getenv("IMAGE_REQUEST_TIMEOUT", "60")),
        "resource_timeout": float(os.getenv("IMAGE_RESOURCE_TIMEOUT", "90")),
        # Retry policy
        "max_attempts": int(os.getenv("IMAGE_MAX_ATTEMPTS", "3")),
        "backoff_step": float(os.getenv("IMAGE_BACKOFF_STEP", "2")),
        "resubmit_on_fetch_failure": os.getenv(
            "IMAGE_RESUBMIT_ON_FETCH_FAILURE", "false"
        ).lower()
        == "true",
        # Upload preparation
        "max_upload_bytes": int(os.getenv("IMAGE_MAX_UPLOAD_BYTES", str(4 * 1024 * 1024))),
        "max_dimension": int(os.getenv("IMAGE_MAX_DIMENSION", "1024")),
        # Logging
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
    }

    return config


def validate_config(config: dict) -> list[str]:
    """Validate configuration and return list of errors."""
    errors = []

    if not config.get("openai_api_key"):
        errors.append("OPENAI_API_KEY is required")

    api_base = config.get("openai_api_base") or ""
    if not api_base.startswith(("https://", "http://")):
        errors.append(f"OPENAI_API_BASE must be an http(s) URL, got {api_base!r}")

    if config.get("max_attempts", 1) < 1:
        errors.append("IMAGE_MAX_ATTEMPTS must be at least 1")

    request_timeout = config.get("request_timeout", 0)
    resource_timeout = config.get("resource_timeout", 0)
    if request_timeout <= 0 or resource_timeout <= 0:
        errors.append("IMAGE_REQUEST_TIMEOUT and IMAGE_RESOURCE_TIMEOUT must be positive")
    elif resource_timeout < request_timeout:
        errors.append("IMAGE_RESOURCE_TIMEOUT must not be shorter than IMAGE_REQUEST_TIMEOUT")

    if config.get("backoff_step", 0) < 0:
        errors.append("IMAGE_BACKOFF_STEP must not be negative")

    return errors


@dataclass(frozen=True)
class ImageClientConfig:
    """Explicit settings passed to ``OpenAIImageClient``."""

    api_key: str
    api_base: str = DEFAULT_API_BASE
    edit_model: str = "dall-e-2"
    generation_model: str = "dall-e-3"
    edit_size: str = "512x512"
    request_timeout: float = 60.0
    resource_timeout: float = 90.0
    max_connections: int = 1
    max_attempts: int = 3
    backoff_step: float = 2.0
    resubmit_on_fetch_failure: bool = False
    max_upload_bytes: int = 4 * 1024 * 1024
    max_dimension: int = 1024

    @classmethod
    def from_config(cls, config: dict) -> "ImageClientConfig":
        """Build from a ``load_config()`` dictionary.

        Raises:
            ValueError: If ``validate_config`` reports any problem
        """
        errors = validate_config(config)
        if errors:
            raise ValueError("; ".join(errors))

        return cls(
            api_key=config["openai_api_key"],
            api_base=config["openai_api_base"],
            edit_model=config["edit_model"],
            generation_model=config["generation_model"],
            request_timeout=config["request_timeout"],
            resource_timeout=config["resource_timeout"],
            max_attempts=config["max_attempts"],
            backoff_step=config["backoff_step"],
            resubmit_on_fetch_failure=config["resubmit_on_fetch_failure"],
            max_upload_bytes=config["max_upload_bytes"],
            max_dimension=config["max_dimension"],
        )

    @classmethod
    def from_env(cls) -> "ImageClientConfig":
        """Build from environment variables (and the project ``.env``)."""
        return cls.from_config(load_config())

    @property
    def edits_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/images/edits"

    @property
    def generations_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/images/generations"
