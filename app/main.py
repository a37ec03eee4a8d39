import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # Startup: make sure the local object store root exists
    if settings.STORAGE_BACKEND == "local":
        bucket_dir = settings.STORAGE_DIR / settings.STORAGE_BUCKET
        bucket_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Almacenamiento local en %s", bucket_dir)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

# Observaciones y correcciones (E2, E3, E4, E11, E14, E16)
from app.routers import observaciones  # noqa: E402

app.include_router(
    observaciones.router,
    prefix=f"{settings.API_PREFIX}/observaciones",
    tags=["Observaciones"],
)
