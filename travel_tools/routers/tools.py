from typing import Any, Dict, List, Optional
import logging
import time

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..context import RequestContext, ToolContext
from ..deps import get_api_key, get_http_client, get_registry
from ..errors import InvalidToolArgumentsError, NoSuchToolError, ProviderError
from ..registry import ToolRegistry
from ..upstream import log_call


router = APIRouter(dependencies=[Depends(get_api_key)])


class InvokeRequest(BaseModel):
    args: Dict[str, Any] = Field(default_factory=dict)
    timezone: Optional[str] = None
    model: str = ""


class InvokeResponse(BaseModel):
    tool: str
    result: Any
    annotations: List[Dict[str, Any]] = []


@router.get("")
async def list_tools(registry: ToolRegistry = Depends(get_registry)) -> List[Dict[str, Any]]:
    return registry.describe()


@router.post("/{name}", response_model=InvokeResponse)
async def invoke_tool(
    name: str,
    req: InvokeRequest,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
    registry: ToolRegistry = Depends(get_registry),
) -> InvokeResponse:
    try:
        tool = registry.get(name)
    except NoSuchToolError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    try:
        params = tool.validate(req.args)
    except InvalidToolArgumentsError as e:
        raise HTTPException(status_code=422, detail=e.message)

    annotations: List[Dict[str, Any]] = []
    ctx = ToolContext(
        request=RequestContext.create(req.timezone),
        http=client,
        llm=getattr(request.app.state, "llm", None),
        model=req.model,
        annotate=annotations.append,
    )
    start_time = time.monotonic()
    try:
        result = await tool.execute(params, ctx)
    except ProviderError as e:
        log_call("tools", name, start_time, False, e.status_code)
        logging.warning("Tool %s failed: %s", name, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{e.provider} request failed",
        )
    log_call("tools", name, start_time, True, status.HTTP_200_OK)
    return InvokeResponse(tool=name, result=result, annotations=annotations)
