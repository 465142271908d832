import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from app.core.config import get_settings
from app.core.exceptions import (
    AppError,
    app_error_handler,
    request_validation_handler,
)
from app.core.logging_config import configure_logging
from app.database import connect_database, ping_database
from app.realtime.broadcaster import broadcaster
from app.realtime.change_stream import change_stream
from app.realtime.relay import start_relay
from app.routers import auth, realtime, tasks

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_database()
    await broadcaster.init_broadcast()
    change_stream.start()
    relay = start_relay(change_stream, broadcaster)
    logger.info("Task Management API ready (broadcast: %s)", broadcaster.backend)
    yield
    await change_stream.close()
    done, _ = await asyncio.wait({relay}, timeout=5)
    if not done:
        relay.cancel()
    await broadcaster.close()


app = FastAPI(
    title="Task Management API",
    description="Task board API with real-time change notifications",
    swagger_ui_parameters={"displayRequestDuration": True},
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

# Include routers
app.include_router(tasks.router)
app.include_router(auth.router)
app.include_router(realtime.router)


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Task Management API is Running..."


@app.get("/health")
async def health_check():
    database = await ping_database()
    return {
        "status": "healthy" if database else "degraded",
        "database": database,
        "broadcast": broadcaster.get_stats(),
    }
