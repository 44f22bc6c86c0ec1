"""Asset downloader writing remote images to the content store."""

import asyncio
import random
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import aiofiles
import httpx

from influencesnap.core.exceptions import DownloadError
from influencesnap.utils.config import (
    DOWNLOAD_CHUNK_SIZE,
    IMAGES_DIR,
    IMAGES_URL_PREFIX,
    MAX_CONCURRENT_DOWNLOADS,
    USER_AGENTS,
)
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


class AssetDownloader:
    """
    Async downloader storing assets under deterministic keys.
    
    A failed asset never raises out of download_asset: the failure is
    logged and the asset gets an empty reference.
    """
    
    def __init__(
        self,
        store_dir: Path = IMAGES_DIR,
        url_prefix: str = IMAGES_URL_PREFIX,
        max_concurrent: int = MAX_CONCURRENT_DOWNLOADS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize downloader.
        
        Args:
            store_dir: Directory assets are written to
            url_prefix: Prefix of the returned references
            max_concurrent: Maximum concurrent downloads
            transport: Optional httpx transport (used by tests)
        """
        self.store_dir = store_dir
        self.url_prefix = url_prefix.rstrip("/")
        self.semaphore = asyncio.Semaphore(max(max_concurrent, 1))
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None
        self.download_count = 0
        self.failed_downloads: List[str] = []
    
    async def __aenter__(self):
        """Create HTTP client on context entry."""
        self.client = httpx.AsyncClient(follow_redirects=True, transport=self.transport)
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close HTTP client on context exit."""
        if self.client:
            await self.client.aclose()
    
    def _get_headers(self) -> dict:
        """Generate request headers with random user agent."""
        return {
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "image/*,*/*",
        }
    
    def ref_for(self, local_key: str) -> str:
        """Reference under which a stored key is served."""
        return f"{self.url_prefix}/{local_key}"
    
    async def _fetch_to_file(self, url: str, filepath: Path) -> int:
        """
        Stream one asset to disk through a temp file.
        
        Returns:
            Number of bytes written
        
        Raises:
            DownloadError: If fetching or writing fails
        """
        if not self.client:
            raise DownloadError("AssetDownloader must be used as context manager")
        
        filepath.parent.mkdir(parents=True, exist_ok=True)
        temp_filepath = filepath.with_suffix(filepath.suffix + ".tmp")
        
        try:
            async with self.semaphore:
                async with self.client.stream("GET", url, headers=self._get_headers()) as response:
                    response.raise_for_status()
                    
                    downloaded_bytes = 0
                    async with aiofiles.open(temp_filepath, "wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE):
                            await f.write(chunk)
                            downloaded_bytes += len(chunk)
            
            # Same key on a rerun overwrites the previous file
            temp_filepath.replace(filepath)
            return downloaded_bytes
        
        except httpx.HTTPStatusError as e:
            raise DownloadError(f"HTTP {e.response.status_code} downloading {url}") from e
        
        except httpx.HTTPError as e:
            raise DownloadError(f"Network error downloading {url}: {e}") from e
        
        except OSError as e:
            raise DownloadError(f"Failed to write {filepath}: {e}") from e
        
        finally:
            if temp_filepath.exists():
                try:
                    temp_filepath.unlink()
                except OSError as e:
                    logger.warning(f"Failed to delete temp file {temp_filepath}: {e}")
    
    async def download_asset(self, remote_url: Optional[str], local_key: str) -> str:
        """
        Download a single asset.
        
        Args:
            remote_url: Asset URL; nothing is fetched when empty
            local_key: Relative key in the store, e.g. "alice/post_1.jpg"
        
        Returns:
            Stored reference, or "" if there was nothing to fetch or it failed
        """
        if not remote_url:
            return ""
        
        filepath = self.store_dir / local_key
        logger.debug(f"Downloading: {remote_url} -> {filepath}")
        try:
            size = await self._fetch_to_file(remote_url, filepath)
        except DownloadError as e:
            logger.error(f"❌ Failed to download {local_key}: {e}")
            self.failed_downloads.append(local_key)
            return ""
        
        self.download_count += 1
        logger.info(f"✅ Saved {local_key} ({size} bytes)")
        return self.ref_for(local_key)
    
    async def download_batch(self, assets: Sequence[Tuple[Optional[str], str]]) -> List[str]:
        """
        Download a batch of independent assets concurrently.
        
        Every task settles on its own; a failed asset does not cancel the
        others. The result list is aligned with the input.
        
        Args:
            assets: (remote_url, local_key) pairs
        
        Returns:
            Stored references, "" for assets that were missing or failed
        """
        logger.info(f"Starting batch download of {len(assets)} assets")
        
        results = await asyncio.gather(
            *(self.download_asset(url, key) for url, key in assets),
            return_exceptions=True,
        )
        
        refs = []
        for result, (url, key) in zip(results, assets):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error downloading {key}: {result!r}")
                self.failed_downloads.append(key)
                refs.append("")
            else:
                refs.append(result)
        
        logger.info(
            f"Batch download complete: {sum(1 for r in refs if r)}/{len(assets)} stored"
        )
        return refs
    
    def get_stats(self) -> dict:
        """Get downloader statistics."""
        return {
            "total_downloads": self.download_count,
            "failed_downloads": len(self.failed_downloads),
            "failed_files": self.failed_downloads,
        }
