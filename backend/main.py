# backend/main.py

from __future__ import annotations

import asyncio

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.core import state
from backend.core.config import settings
from backend.core.errors import ChatError
from backend.core.logging import setup_logging, get_logger
from backend.services.auth_service import router as auth_router
from backend.services.redis_pub_sub import AsyncRedisPubSubService
from backend.api.routes import root, health, metrics, rooms, messages
from backend.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Chatrix Chat Rooms")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(auth_router)
app.include_router(rooms.router)
app.include_router(messages.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Map the error taxonomy to stable status codes."""
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error: %s %s -> %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "internal", "detail": "Internal server error"})


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Application starting - relay=%s", settings.PUB_SUB_SERVICE)

    if settings.PUB_SUB_SERVICE == "redis":
        redis_service = AsyncRedisPubSubService(
            hub=state.hub,
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            access_key=settings.REDIS_ACCESS_KEY,
        )
        await redis_service.connect()

        # Store globally and route room publishes through Redis
        state.redis_service = redis_service
        state.room_service.publisher = redis_service

        # Start subscriber in background
        state.redis_listener = asyncio.create_task(redis_service.listen())


@app.on_event("shutdown")
async def on_shutdown():
    if state.redis_service is not None:
        if state.redis_listener is not None:
            state.redis_listener.cancel()
        await state.redis_service.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.main:app", host=settings.HOST, port=settings.PORT)
