import logging

import openai
from openai import AsyncOpenAI

from sitesmith.services.template_loader import slugify

logger = logging.getLogger(__name__)

FALLBACK_IMAGE_HOST = "https://picsum.photos/seed"


def fallback_image_url(keyword: str, width: int = 1200, height: int = 800) -> str:
    """Stable placeholder photo for a keyword; same keyword and size give the same URL."""
    return f"{FALLBACK_IMAGE_HOST}/{slugify(keyword)}/{width}/{height}"


class ImageAssetProvider:
    """Asset collaborator. ``request_image`` returns a URL, or None when it has nothing."""

    async def request_image(self, prompt: str) -> str | None:
        return None


class OpenAIImageAssets(ImageAssetProvider):
    def __init__(self, api_key: str, model: str = "dall-e-3", size: str = "1792x1024", timeout: float | None = None):
        self.model = model
        self.size = size
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    async def request_image(self, prompt: str) -> str | None:
        try:
            result = await self._client.images.generate(
                model=self.model,
                prompt=prompt[:1000],
                size=self.size,
                n=1,
            )
        except openai.APIError as e:
            logger.warning(f"[assets] Image generation failed: {e}")
            return None

        if not result.data:
            return None
        return result.data[0].url
