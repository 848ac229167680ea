from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import time

from .core.config import settings
from .core.database import close_db_connections
from .core.error_handlers import register_exception_handlers
from .core.logging import setup_logging
from .routers import health, connections, messages, groups, notifications

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} API ({settings.environment})")
    yield
    logger.info(f"Shutting down {settings.app_name} API")
    await close_db_connections()
    logger.info("Shutdown complete")

app = FastAPI(
    title="AlumniHub API",
    description="Alumni connections, direct messaging, group chats and notifications",
    version=settings.app_version,
    lifespan=lifespan
)

register_exception_handlers(app)

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s")
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

app.include_router(health.router)
app.include_router(connections.router)
app.include_router(messages.router)
app.include_router(groups.router)
app.include_router(notifications.router)

@app.get("/")
async def root():
    return {
        "message": f"{settings.app_name} API",
        "version": settings.app_version,
        "features": ["Connections", "Direct Messages", "Group Chats", "Notifications"],
        "status": "active"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("alumni_hub.main:app", host="0.0.0.0", port=8000, reload=True)
