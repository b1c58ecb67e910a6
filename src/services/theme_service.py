"""Theme presets - restyle a photo with a named look."""

from enum import Enum
from typing import Optional

from models.image_transform import ResultImage
from services.image_preparation import ImageSource
from services.openai_image_client import OpenAIImageClient


class ThemeStyle(str, Enum):
    """Built-in themes offered on the theme picker."""

    STUDIO_GHIBLI = "Studio Ghibli"
    WATER_COLOR = "Water Color"
    CYBERPUNK = "CyberPunk"


THEME_PROMPTS = {
    ThemeStyle.STUDIO_GHIBLI: (
        "Transform this image into Studio Ghibli animation style, with dreamlike "
        "landscapes, whimsical characters, and vibrant natural colors."
    ),
    ThemeStyle.WATER_COLOR: (
        "Convert this image into a beautiful watercolor painting, with soft edges, "
        "flowing colors, and artistic brush strokes."
    ),
    ThemeStyle.CYBERPUNK: (
        "Transform this image into a cyberpunk style with neon lights, tech elements, "
        "dystopian urban setting, and vibrant contrasting colors."
    ),
}


def prompt_for_theme(theme: str) -> str:
    """Edit prompt for a theme name; unknown names get a generic prompt."""
    try:
        return THEME_PROMPTS[ThemeStyle(theme)]
    except ValueError:
        return f"Transform this image into an artistic {theme} style."


class ThemeService:
    """Applies theme presets through the image edit endpoint."""

    def __init__(self, client: OpenAIImageClient):
        self.client = client

    def available_themes(self) -> list[str]:
        return [theme.value for theme in ThemeStyle]

    async def apply_theme(
        self,
        image: ImageSource,
        theme: str,
        mask: Optional[ImageSource] = None,
    ) -> ResultImage:
        """Restyle ``image`` with ``theme``.

        Raises:
            ImageTransformError: Any failure surfaced by ``edit_image``
        """
        return await self.client.edit_image(image, prompt_for_theme(theme), mask=mask)
