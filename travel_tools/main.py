from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

from fastapi import Depends, FastAPI
from fastapi.middleware.gzip import GZipMiddleware
import httpx
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
import uvicorn

from .catalog import build_registry
from .config import CONFIG
from .deps import get_api_key
from .registry import ToolRegistry
from .routers.tools import router as tools_router


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)


def create_app(registry: Optional[ToolRegistry] = None) -> FastAPI:
    """Standalone tool service: every registered tool behind ``POST /tools/{name}``."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client = httpx.AsyncClient(
            timeout=CONFIG.http_timeout_sec,
            headers={"User-Agent": CONFIG.user_agent},
        )
        app.state.http_client = http_client
        app.state.registry = registry or build_registry()
        logging.info("Tool service ready with %d tools", len(app.state.registry))
        try:
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(title="Travel Tools", lifespan=lifespan)
    # Rate limit is per client address, shared across all tools
    app.state.limiter = Limiter(key_func=get_remote_address, default_limits=[CONFIG.rate_limit])
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=512)
    app.include_router(tools_router, prefix="/tools")

    @app.get("/", dependencies=[Depends(get_api_key)])
    async def root():
        return {"status": "ok", "tools": app.state.registry.names()}

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3001"))
    uvicorn.run(app, host="0.0.0.0", port=port)
