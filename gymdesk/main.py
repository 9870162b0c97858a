from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gymdesk.config import settings
from gymdesk.database import close_database, init_database
from gymdesk.exception_handlers import register_exception_handlers
from gymdesk.imports.router import router as imports_router
from gymdesk.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_database()
    yield
    await close_database()


app = FastAPI(
    title="Gymdesk",
    description="Bulk data import for the gym management console",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(imports_router, prefix="/api/v1/imports", tags=["imports"])


@app.get("/api/v1/health")
async def health():
    from gymdesk.database import check_health

    await check_health()
    return {"status": "healthy"}
