from typing import Any, Callable, Optional
import httpx

from fastapi import Header, HTTPException, status, Request

from .config import CONFIG
from .registry import ToolRegistry


def get_api_key(x_api_key: Optional[str] = Header(default=None)) -> str:
    expected_api_key = CONFIG.api_key
    if expected_api_key is None or x_api_key != expected_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key


def app_state(attr: str, label: str) -> Callable[[Request], Any]:
    """Dependency returning ``request.app.state.<attr>``; 500 until the lifespan has set it."""

    def dependency(request: Request) -> Any:
        value = getattr(request.app.state, attr, None)
        if value is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"{label} not initialized",
            )
        return value

    return dependency


get_http_client: Callable[[Request], httpx.AsyncClient] = app_state("http_client", "HTTP client")
get_registry: Callable[[Request], ToolRegistry] = app_state("registry", "Tool registry")
