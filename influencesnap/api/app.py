"""FastAPI application serving the query side."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from influencesnap import __version__
from influencesnap.api.routes import router
from influencesnap.core.aggregation import AggregationResolver
from influencesnap.core.exceptions import LabelingError, StoreError
from influencesnap.core.image_proxy import ImageProxy
from influencesnap.core.labeler import ImageLabeler
from influencesnap.storage.database import Database, get_database
from influencesnap.storage.repository import SqlSnapshotRepository
from influencesnap.utils.config import IMAGES_DIR, IMAGES_URL_PREFIX
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(
    database: Optional[Database] = None,
    proxy: Optional[ImageProxy] = None,
    labeler: Optional[ImageLabeler] = None,
    images_dir: Path = IMAGES_DIR,
) -> FastAPI:
    """Create and configure the FastAPI application instance."""
    database = database or get_database()
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.proxy = proxy or ImageProxy()
        app.state.labeler = labeler or ImageLabeler()
        app.state.resolver = AggregationResolver(SqlSnapshotRepository(database))
        app.state.database = database
        app.state.store_ready = False
        
        # The server stays up without a store; queries retry the init
        try:
            await database.init()
            app.state.store_ready = True
        except StoreError as e:
            logger.error(f"❌ Store unavailable at startup: {e}")
        
        yield
        
        await app.state.proxy.aclose()
        await app.state.labeler.aclose()
        await database.close()
    
    app = FastAPI(title="InfluenceSnap API", version=__version__, lifespan=lifespan)
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error(f"Store error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc)},
        )
    
    @app.exception_handler(LabelingError)
    async def labeling_error_handler(request: Request, exc: LabelingError):
        logger.error(f"Labeling error: {exc}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": str(exc)},
        )
    
    app.include_router(router)
    
    # Locally downloaded images
    app.mount(IMAGES_URL_PREFIX, StaticFiles(directory=str(images_dir), check_dir=False), name="images")
    
    return app
