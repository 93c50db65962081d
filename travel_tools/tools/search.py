import asyncio
from typing import Any, Dict, List
import logging

from ..config import CONFIG
from ..context import ToolContext
from ..normalizer import collect_live_images, deduplicate_by_domain_and_url
from ..registry import ToolDefinition
from ..schemas import SearchResultItem, WebSearchParams
from ..upstream import fetch_json, require_key


def _pick(values: List[Any], index: int, default: Any) -> Any:
    # Per-query option, else the first one, else the default
    if index < len(values) and values[index]:
        return values[index]
    if values and values[0]:
        return values[0]
    return default


async def _search_one(params: WebSearchParams, ctx: ToolContext, index: int, query: str) -> Dict[str, Any]:
    topic = _pick(list(params.topics), index, "general")
    payload: Dict[str, Any] = {
        "api_key": require_key("tavily", CONFIG.tavily_api_key),
        "query": query,
        "topic": topic,
        "max_results": _pick(params.max_results, index, 10),
        "search_depth": _pick(list(params.search_depth), index, "basic"),
        "include_answer": True,
        "include_images": True,
        "include_image_descriptions": True,
        "exclude_domains": params.exclude_domains,
    }
    if topic == "news":
        payload["days"] = 7

    data = await fetch_json(
        ctx.http,
        "tavily",
        "search",
        f"{CONFIG.tavily_base}/search",
        method="POST",
        json_body=payload,
    )
    raw_results = data.get("results") or []
    raw_images = data.get("images") or []

    ctx.annotate(
        {
            "type": "query_completion",
            "data": {
                "query": query,
                "index": index,
                "total": len(params.queries),
                "status": "completed",
                "resultsCount": len(raw_results),
                "imagesCount": len(raw_images),
            },
        }
    )

    results = []
    for item in deduplicate_by_domain_and_url(r for r in raw_results if r.get("url")):
        results.append(
            SearchResultItem(
                url=item["url"],
                title=item.get("title") or "",
                content=item.get("content") or "",
                raw_content=item.get("raw_content"),
                published_date=item.get("published_date") if topic == "news" else None,
            ).model_dump()
        )
    images = await collect_live_images(ctx.http, raw_images)
    return {"query": query, "results": results, "images": images}


async def web_search(params: WebSearchParams, ctx: ToolContext) -> Dict[str, Any]:
    logging.info("web_search queries=%s topics=%s depth=%s", params.queries, params.topics, params.search_depth)
    searches = await asyncio.gather(
        *(_search_one(params, ctx, index, query) for index, query in enumerate(params.queries))
    )
    return {"searches": list(searches)}


WEB_SEARCH = ToolDefinition(
    name="web_search",
    description="Search the web for information with 5-10 queries, max results and search depth.",
    parameters=WebSearchParams,
    execute=web_search,
)
