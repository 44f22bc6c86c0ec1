"""Command line entry point for InfluenceSnap."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from influencesnap import __version__
from influencesnap.core.auth import Credentials
from influencesnap.core.exceptions import InfluenceSnapError
from influencesnap.core.ingestion import IngestionService
from influencesnap.storage.database import get_database
from influencesnap.storage.repository import SqlSnapshotRepository
from influencesnap.utils import config
from influencesnap.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def ingest(handle: str, credentials: Credentials) -> int:
    """Run one ingestion for a handle. Returns the process exit code."""
    database = get_database()
    try:
        await database.init()
        service = IngestionService(SqlSnapshotRepository(database), credentials)
        await service.run(handle)
    except InfluenceSnapError as e:
        logger.error(f"❌ Ingestion for {handle} failed: {e}")
        return 1
    finally:
        await database.close()
    return 0


def serve(host: str, port: int) -> None:
    """Run the query API."""
    import uvicorn
    
    from influencesnap.api.app import create_app
    
    logger.info(f"🚀 Server ready at http://{host}:{port}/influencers")
    logger.info(f"🖼️ Images served at http://{host}:{port}{config.IMAGES_URL_PREFIX}")
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="influencesnap", description="Influencer snapshot ingestion and analytics")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    ingest_parser = subparsers.add_parser("ingest", help="Fetch a profile and store its snapshot")
    ingest_parser.add_argument("handle", nargs="?", default=config.INFLUENCER_HANDLE, help="Profile handle (default: $INFLUENCER_HANDLE)")
    
    serve_parser = subparsers.add_parser("serve", help="Run the query API")
    serve_parser.add_argument("--host", default=config.API_HOST)
    serve_parser.add_argument("--port", type=int, default=config.API_PORT)
    
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    
    if args.command == "serve":
        serve(args.host, args.port)
        return 0
    
    if not args.handle:
        parser.error("no handle given and INFLUENCER_HANDLE is not set")
    if not config.IG_USERNAME or not config.IG_PASSWORD:
        logger.error("❌ IG_USERNAME and IG_PASSWORD must be set")
        return 1
    
    credentials = Credentials(username=config.IG_USERNAME, password=config.IG_PASSWORD)
    return asyncio.run(ingest(args.handle, credentials))


if __name__ == "__main__":
    sys.exit(main())
