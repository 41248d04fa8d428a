import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hirehub_backend.api.sessions import session_router, limiter
from hirehub_backend.database import create_schema
from hirehub_backend.exceptions import register_exception_handlers
from hirehub_backend.settings import settings
from hirehub_backend.websocket import manager, ws_router
from hirehub_backend.websocket.room_store import get_room_store

logger = logging.getLogger(__name__)


async def startup_logic():
    if settings.DB_CREATE_SCHEMA:
        create_schema()
        logger.info("Database schema ensured")

    # Resolve the store now so a bad ROOM_STORE_BACKEND fails startup
    store = get_room_store()
    logger.info(f"Room authorization store: {type(store).__name__}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup_logic()
    yield
    logger.info(f"Shutting down with {manager.get_connection_count()} open WebSocket connection(s)")


def create_app() -> FastAPI:
    app = FastAPI(title="HireHub", lifespan=lifespan)

    app.state.limiter = limiter

    # Register custom exception handlers for structured error responses
    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session_router)
    app.include_router(ws_router, tags=["websocket"])

    @app.get("/health", tags=["system"])
    def health():
        return {"status": "ok", "websocket": manager.get_metrics()}

    @app.head("/", status_code=204)
    def get_status_head():
        return

    return app


app = create_app()


def run():
    import uvicorn

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "hirehub_backend.server:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        reload=settings.DEBUG_MODE == "development" and os.environ.get("UVICORN_RELOAD", "false").lower() == "true",
    )


if __name__ == "__main__":
    run()
