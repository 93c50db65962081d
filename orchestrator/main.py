from contextlib import asynccontextmanager
import logging
import os
from typing import AsyncIterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import StreamingResponse
import httpx
from pydantic import BaseModel, Field, ValidationError
import uvicorn

from travel_tools.catalog import build_registry
from travel_tools.context import RequestContext
from travel_tools.deps import app_state, get_http_client
from travel_tools.registry import ToolRegistry

from .config import CONFIG
from .events import DONE_SSE
from .llm import GeminiLanguageModel, LanguageModel, LanguageModelError
from .messages import ChatRequest, Message
from .pipeline import DualPassOrchestrator
from .suggestions import fetch_metadata, suggest_questions


logging.basicConfig(
    level=CONFIG.log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0 Safari/537.36"
)


class SuggestRequest(BaseModel):
    messages: List[Message] = Field(..., min_length=1)


class SuggestResponse(BaseModel):
    questions: List[str]


get_orchestrator = app_state("orchestrator", "Orchestrator")
get_llm = app_state("llm", "Language model")


def _image_content_type(upstream: httpx.Response) -> str:
    if upstream.status_code >= 400:
        raise HTTPException(status_code=502, detail=f"Upstream returned {upstream.status_code}")
    content_type = upstream.headers.get("content-type", "")
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail="URL does not point to an image")
    return content_type


async def _read_capped(upstream: httpx.Response, limit: int) -> bytes:
    declared = upstream.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise HTTPException(status_code=413, detail="Image is too large to proxy")
    chunks: List[bytes] = []
    size = 0
    async for chunk in upstream.aiter_bytes():
        size += len(chunk)
        if size > limit:
            raise HTTPException(status_code=413, detail="Image is too large to proxy")
        chunks.append(chunk)
    return b"".join(chunks)


def create_app(llm: Optional[LanguageModel] = None, registry: Optional[ToolRegistry] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        http_client = httpx.AsyncClient(timeout=CONFIG.http_timeout_sec)
        model = llm or GeminiLanguageModel()
        app.state.http_client = http_client
        app.state.llm = model
        app.state.registry = registry or build_registry()
        app.state.orchestrator = DualPassOrchestrator(model, app.state.registry, http_client)
        try:
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(title="Travel Planner Chat", lifespan=lifespan)
    app.add_middleware(GZipMiddleware, minimum_size=512)

    @app.get("/health")
    async def health():
        return {"status": "ok", "tools": len(app.state.registry)}

    @app.post("/api/chat")
    async def chat(req: ChatRequest, orchestrator: DualPassOrchestrator = Depends(get_orchestrator)):
        context = RequestContext.create(req.timezone, user_id=req.user_id)

        async def stream() -> AsyncIterator[str]:
            async for event in orchestrator.stream(req.messages, model=req.model, group=req.group, context=context):
                yield event.to_sse()
            yield DONE_SSE

        return StreamingResponse(stream(), media_type="text/event-stream")

    @app.post("/api/suggest-questions", response_model=SuggestResponse)
    async def suggest(req: SuggestRequest, model: LanguageModel = Depends(get_llm)) -> SuggestResponse:
        try:
            questions = await suggest_questions(model, req.messages)
        except (LanguageModelError, ValidationError) as e:
            logging.warning("Question suggestion failed: %s", e)
            raise HTTPException(status_code=502, detail="Question suggestion is unavailable")
        return SuggestResponse(questions=questions)

    @app.get("/api/metadata")
    async def metadata(url: str = Query(..., min_length=1), client: httpx.AsyncClient = Depends(get_http_client)):
        return await fetch_metadata(client, url)

    @app.api_route("/api/proxy-image", methods=["GET", "HEAD"])
    async def proxy_image(
        request: Request,
        url: str = Query(..., min_length=1),
        client: httpx.AsyncClient = Depends(get_http_client),
    ) -> Response:
        if not url.lower().startswith(("http://", "https://")):
            raise HTTPException(status_code=400, detail="Only http(s) image URLs can be proxied")
        fetch_headers = {"User-Agent": BROWSER_USER_AGENT, "Accept": "image/*"}
        try:
            if request.method == "HEAD":
                upstream = await client.head(url, headers=fetch_headers, follow_redirects=True)
                content_type = _image_content_type(upstream)
                body = b""
            else:
                async with client.stream("GET", url, headers=fetch_headers, follow_redirects=True) as upstream:
                    content_type = _image_content_type(upstream)
                    body = await _read_capped(upstream, CONFIG.proxy_max_image_bytes)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logging.warning("Image proxy fetch failed for %s: %s", url, e)
            raise HTTPException(status_code=502, detail="Failed to fetch image")

        headers = {"x-final-url": str(upstream.url), "Cache-Control": "public, max-age=86400"}
        return Response(content=body, media_type=content_type, headers=headers)

    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.getenv("PORT", "3002"))
    uvicorn.run(app, host="0.0.0.0", port=port)
