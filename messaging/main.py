import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.errors import AutoReconnect

from messaging.core.config import get_settings
from messaging.core.logging import configure_logging
from messaging.database.connection import close_mongo_connection, connect_to_mongo
from messaging.routers.conversations import router as conversations_router
from messaging.routers.messages import router as messages_router
from messaging.utils.errors import MessagingError
from messaging.utils.realtime_bus import close_bus
from messaging.utils.typing_store import TypingPresenceStore


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    configure_logging()
    settings = get_settings()
    await connect_to_mongo()
    typing = TypingPresenceStore(ttl_seconds=settings.typing_ttl_seconds)
    typing.start_sweeper(settings.typing_sweep_interval_seconds)
    app.state.typing_store = typing
    try:
        yield
    finally:
        await typing.stop_sweeper()
        await close_bus()
        await close_mongo_connection()


app = FastAPI(title="Booking Platform Messaging", lifespan=lifespan)


@app.exception_handler(MessagingError)
async def messaging_error_handler(request: Request, exc: MessagingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# also covers server selection and network timeouts
@app.exception_handler(AutoReconnect)
async def storage_unavailable_handler(request: Request, exc: Exception):
    logger.warning("storage error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable, please retry"})


app.include_router(conversations_router)
app.include_router(messages_router)


@app.get("/health")
async def health():

    return {"status": "ok"}
