"""Models for OpenAI image editing and generation."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ValidationError


class ImageSize(str, Enum):
    """Output sizes accepted by the images API."""

    SMALL = "256x256"
    MEDIUM = "512x512"
    SQUARE = "1024x1024"
    LANDSCAPE = "1792x1024"
    PORTRAIT = "1024x1792"


class AttemptState(str, Enum):
    """State of a retried call."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class EditRequest:
    """Request for editing a supplied image."""

    image_png: bytes  # RGBA PNG, already prepared for upload
    prompt: str
    mask_png: Optional[bytes] = None

    @property
    def has_mask(self) -> bool:
        return self.mask_png is not None


@dataclass
class GenerationRequest:
    """Request for text-to-image generation."""

    prompt: str
    size: ImageSize = ImageSize.SQUARE
    count: int = 1

    def to_payload(self, model: str) -> dict:
        """Convert to the JSON body sent to the generations endpoint."""
        return {
            "model": model,
            "prompt": self.prompt,
            "n": self.count,
            "size": self.size.value,
            "response_format": "url",
        }


@dataclass
class ResultImage:
    """A fetched, decodable result image."""

    data: bytes
    format: str
    width: int
    height: int
    source_url: str
    attempts: int = 1
    elapsed_seconds: float = 0.0

    @property
    def content_type(self) -> str:
        return f"image/{self.format.lower()}"

    def to_dict(self) -> dict:
        """Convert to dictionary without the raw bytes."""
        return {
            "format": self.format,
            "width": self.width,
            "height": self.height,
            "size_bytes": len(self.data),
            "source_url": self.source_url,
            "attempts": self.attempts,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


# =============================================================================
# Wire models (parsed from the service's JSON bodies)
# =============================================================================


class ImageAsset(BaseModel):
    """One asset reference in a successful response."""

    url: str


class ServiceResponse(BaseModel):
    """Successful images API response: ``{created, data: [{url}]}``."""

    created: int
    data: list[ImageAsset] = Field(min_length=1)

    @property
    def first_url(self) -> str:
        return self.data[0].url


class ServiceErrorDetail(BaseModel):
    """Service-reported error detail."""

    message: str
    type: Optional[str] = None
    param: Optional[str] = None
    code: Optional[str | int] = None


class ServiceErrorBody(BaseModel):
    """Error envelope: ``{error: {message, type?, param?, code?}}``."""

    error: ServiceErrorDetail


def parse_error_body(body: bytes) -> Optional[ServiceErrorDetail]:
    """Parse an error envelope, returning None if the body is not one."""
    if not body:
        return None
    try:
        return ServiceErrorBody.model_validate_json(body).error
    except ValidationError:
        return None
