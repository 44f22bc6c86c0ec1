"""Relay of remote images through the service."""

from dataclasses import dataclass
from typing import Optional

import httpx

from influencesnap.core.exceptions import ProxyError
from influencesnap.utils.config import DEFAULT_IMAGE_CONTENT_TYPE, USER_AGENTS
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RelayedImage:
    """Upstream bytes and their content type."""
    content: bytes
    content_type: str


class ImageProxy:
    """
    Fetches remote images on demand.
    
    Every call goes upstream; nothing is cached or shared between calls
    except the client's connection pool.
    """
    
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client = httpx.AsyncClient(
            follow_redirects=True,
            transport=transport,
            headers={"User-Agent": USER_AGENTS[0]},
        )
    
    async def relay(self, remote_url: str) -> RelayedImage:
        """
        Fetch an image from upstream.
        
        Args:
            remote_url: Absolute image URL
        
        Returns:
            RelayedImage with the upstream content type, or the default
            image type if upstream sent none
        
        Raises:
            ProxyError: If the upstream request fails or returns an error status
        """
        logger.debug(f"Relaying image: {remote_url}")
        try:
            response = await self.client.get(remote_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ProxyError(f"Upstream returned HTTP {e.response.status_code} for {remote_url}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ProxyError(f"Failed to fetch {remote_url}: {e}") from e
        
        return RelayedImage(
            content=response.content,
            content_type=response.headers.get("content-type") or DEFAULT_IMAGE_CONTENT_TYPE,
        )
    
    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
