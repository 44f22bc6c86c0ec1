"""Client for the external image labeling service."""

from typing import Optional

import httpx

from influencesnap.core.exceptions import LabelingError
from influencesnap.utils.config import LABELER_URL
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


class ImageLabeler:
    """Passes an image URL to the labeling service and returns its label text."""
    
    def __init__(self, endpoint: Optional[str] = LABELER_URL, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.endpoint = endpoint
        self.client = httpx.AsyncClient(transport=transport)
    
    async def analyze(self, image_url: str) -> str:
        """
        Label an image.
        
        Raises:
            LabelingError: If no service is configured or the call fails
        """
        if not self.endpoint:
            raise LabelingError("No image labeling service configured (set LABELER_URL)")
        
        try:
            response = await self.client.post(self.endpoint, json={"imageUrl": image_url})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LabelingError(f"Labeling service failed for {image_url}: {e}") from e
        
        if response.headers.get("content-type", "").startswith("application/json"):
            payload = response.json()
            if isinstance(payload, dict) and "label" in payload:
                return str(payload["label"])
        return response.text
    
    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
