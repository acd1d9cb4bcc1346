import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from camara_ai.core.config import settings
from camara_ai.core.database import engine
from camara_ai.api.router import api_router
from camara_ai.api.endpoints.assistant import session_store
from camara_ai.assistant.sessions import sweep_sessions

logger = logging.getLogger(__name__)


# Sweep idle conversations while the app runs, close the engine at shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    sweeper = asyncio.create_task(
        sweep_sessions(session_store, settings.SESSION_SWEEP_INTERVAL_SECONDS)
    )
    logger.info("Session sweeper started")

    yield

    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await engine.dispose()


app = FastAPI(title="Câmara Expenses Assistant API", lifespan=lifespan)

# Include the master router containing all our endpoints
app.include_router(api_router)


@app.get("/")
async def root():
    return {"message": "Ask about federal deputies' expenses at POST /ai/ask"}
