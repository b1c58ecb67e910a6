# Data models for the image client
from .image_transform import (
    AttemptState,
    EditRequest,
    GenerationRequest,
    ImageAsset,
    ImageSize,
    ResultImage,
    ServiceErrorBody,
    ServiceErrorDetail,
    ServiceResponse,
)

__all__ = [
    "AttemptState",
    "EditRequest",
    "GenerationRequest",
    "ImageAsset",
    "ImageSize",
    "ResultImage",
    "ServiceErrorBody",
    "ServiceErrorDetail",
    "ServiceResponse",
]
