"""FastAPI application."""

import argparse
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

import httpx
from fastapi import FastAPI

from configs import settings
from price_hunter.controllers.search_controllers import search_router
from price_hunter.logger_config import get_logger


logger = get_logger("price_search", settings.LOG_LEVEL)

parser = argparse.ArgumentParser()
parser.add_argument("--host", default="0.0.0.0", help="Application host.")
parser.add_argument("--port", default="8000", help="Application port.")
parser.add_argument(
    "--reload",
    required=False,
    help="Enable auto-reload for development purposes.",
)
args, _ = parser.parse_known_args()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Share one HTTP client between all searches."""
    async with httpx.AsyncClient(
        timeout=settings.DETAIL_TIMEOUT_SECONDS, follow_redirects=True
    ) as client:
        app.state.http_client = client
        logger.info("HTTP client ready for store workers.")
        yield
    logger.info("HTTP client closed.")


logger.info("Starting FastAPI application...")
app = FastAPI(
    title="UAE Price Hunter API",
    root_path=settings.ROOT_PATH_BACKEND,
    description="Compare product prices across Amazon.ae, Noon and SharafDG.",
    lifespan=lifespan,
)
app.include_router(search_router)


@app.get("/", response_description="Api healthcheck")  # type: ignore[misc]
async def index() -> Dict[str, str]:
    """Define a route for handling HTTP GET requests to the root URL ("/")."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app", host=args.host, port=int(args.port), reload=bool(args.reload)
    )
