"""Configuration management for InfluenceSnap."""

import os
from pathlib import Path
from typing import List, Optional

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = Path(os.getenv("INFLUENCESNAP_DATA_DIR", str(PROJECT_ROOT)))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database configuration
DB_PATH = DATA_DIR / "influencesnap.db"
DB_URL = os.getenv("INFLUENCESNAP_DB_URL", f"sqlite+aiosqlite:///{DB_PATH}")

# Content store for downloaded images
IMAGES_DIR = DATA_DIR / "public" / "images"
IMAGES_DIR.mkdir(parents=True, exist_ok=True)
IMAGES_URL_PREFIX = "/images"

# Saved platform sessions and device fingerprints
SESSION_DIR = DATA_DIR / ".sessions"
SESSION_DIR.mkdir(exist_ok=True)

# Logs configuration
LOG_DIR = DATA_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)
LOG_FILE = LOG_DIR / "influencesnap.log"

# Platform credentials and default target
IG_USERNAME: Optional[str] = os.getenv("IG_USERNAME")
IG_PASSWORD: Optional[str] = os.getenv("IG_PASSWORD")
INFLUENCER_HANDLE: Optional[str] = os.getenv("INFLUENCER_HANDLE")

# Number of most recent posts kept per snapshot
WINDOW_SIZE = int(os.getenv("INFLUENCESNAP_WINDOW_SIZE", "10"))
MAX_CONCURRENT_DOWNLOADS = WINDOW_SIZE

# HTTP configuration
DOWNLOAD_CHUNK_SIZE = 8192  # Bytes
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"

# External image labeling service
LABELER_URL: Optional[str] = os.getenv("LABELER_URL")

# Query API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "4000"))

# User agent pool; one is pinned per credential identity
USER_AGENTS: List[str] = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
]

# App information
APP_NAME = "influencesnap"
APP_VERSION = "0.1.0"
