"""FastAPI application exposing the AI inventory assistant."""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fastapi import FastAPI

from app.api.routes.inventory_ai import router as inventory_ai_router
from app.config.openai_client import create_completion_client
from app.config.supabase_client import supabase_configured
from app.schemas import HealthResponse

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    client = create_completion_client()
    app.state.completion_client = client
    if not supabase_configured():
        logger.warning("Supabase configuration missing; inventory reads will fail.")
    try:
        yield
    finally:
        app.state.completion_client = None
        if client is not None:
            await client.close()


app = FastAPI(title="Restaurant Inventory Assistant", lifespan=lifespan)

app.include_router(inventory_ai_router)


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)
