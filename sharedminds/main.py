import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sharedminds.core.database import StorageClient
from sharedminds.core.logging_config import configure_logging
from sharedminds.core.settings import settings
from sharedminds.domains.ai_registry.routes import router as ai_registry_router
from sharedminds.domains.ai_routing.routes import router as ai_routing_router
from sharedminds.domains.auth.routes import router as auth_router
from sharedminds.domains.projections.routes import router as projections_router
from sharedminds.domains.sharing.routes import router as sharing_router
from sharedminds.domains.trackers.routes import router as trackers_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    configure_logging()
    if settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY:
        app.state.storage = await StorageClient.connect(settings)
    else:
        logger.warning("Supabase is not configured; storage is unavailable")
    yield


app = FastAPI(
    title="SharedMinds API",
    description="Sharing permissions and AI feature routing for SharedMinds",
    version="0.1.0",
    lifespan=lifespan,
)

allowed_origins = [settings.FRONTEND_URL] if settings.FRONTEND_URL else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(sharing_router, prefix="/api/v1")
app.include_router(trackers_router, prefix="/api/v1")
app.include_router(projections_router, prefix="/api/v1")
app.include_router(ai_routing_router, prefix="/api/v1")
app.include_router(ai_registry_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "SharedMinds API is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
