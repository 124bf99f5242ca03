from contextlib import asynccontextmanager
from typing import AsyncGenerator
import os
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from alembic.config import Config
from alembic import command

from src.db import init_db
from src.core import get_settings
from src.core.exceptions import KanbanError, UnauthenticatedError
from src.api.v1 import api_router
from src.core.middleware import RequestLoggingMiddleware
from src.logs.server_log import api_logger

# Get application settings
settings = get_settings()


def run_migrations() -> None:
    alembic_cfg = Config(os.path.join(Path(__file__).parent.parent, "alembic.ini"))
    command.upgrade(alembic_cfg, "head")


# Lifespan event handler
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        if settings.RUN_MIGRATIONS:
            run_migrations()

        # Initialize database on startup
        await init_db()
        api_logger.info("Database migrations applied and initialized successfully")
    except Exception as e:
        api_logger.error(f"Error applying migrations: {e}")
        raise

    yield


# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Kanban board plugin: boards, columns, cards and board access control",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(KanbanError)
async def kanban_error_handler(request: Request, exc: KanbanError):
    """Domain errors become JSON responses with their HTTP status"""
    if exc.status_code >= 500:
        api_logger.error(f"{request.method} {request.url}: {exc.detail}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )


# Include API router
app.include_router(api_router)


@app.get("/")
async def root(request: Request):
    """Health check endpoint"""
    api_logger.info(f"Received health check request: {request.method} {request.url}")
    return {"message": f"{settings.PROJECT_NAME} is running"}


if __name__ == "__main__":
    import uvicorn
    print("\033[1;36m" + "=" * 50 + "\033[0m")  # Cyan
    print("\033[1;36m" + "  Запуск API сервера канбан-доски" + "\033[0m")  # Cyan
    print("\033[1;36m" + "=" * 50 + "\033[0m")  # Cyan

    api_logger.info(f"Сервер запускается на http://0.0.0.0:8000")

    # Запускаем uvicorn с настройкой логирования
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
