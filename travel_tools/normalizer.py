"""Shaping helpers for search results and image candidates."""

import asyncio
from dataclasses import dataclass
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

import httpx

from .config import CONFIG


T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")
_URL_HOST = re.compile(r"^https?://([^/?#]+)(?:[/?#]|$)", re.IGNORECASE)

IMAGE_CHECK_HEADERS = {
    "Accept": "image/*",
    "User-Agent": "Mozilla/5.0 (compatible; ImageValidator/1.0)",
}


def sanitize_url(url: str) -> str:
    return _WHITESPACE.sub("%20", url)


def extract_domain(url: str) -> str:
    """Host part of an http(s) URL, case preserved; the URL itself otherwise."""
    match = _URL_HOST.match(url)
    return match.group(1) if match else url


def _url_of(item: Any) -> str:
    if isinstance(item, Mapping):
        return str(item.get("url", ""))
    return str(getattr(item, "url", ""))


def deduplicate_by_domain_and_url(items: Iterable[T]) -> List[T]:
    """Keep an item only when neither its URL nor its domain was seen before."""
    seen_domains: set[str] = set()
    seen_urls: set[str] = set()
    kept: List[T] = []
    for item in items:
        url = _url_of(item)
        domain = extract_domain(url)
        if url in seen_urls or domain in seen_domains:
            continue
        seen_urls.add(url)
        seen_domains.add(domain)
        kept.append(item)
    return kept


@dataclass(frozen=True)
class ImageValidation:
    valid: bool
    redirected_url: Optional[str] = None


_INVALID = ImageValidation(valid=False)


def _is_image(resp: httpx.Response) -> bool:
    content_type = resp.headers.get("content-type")
    return bool(content_type) and content_type.startswith("image/")


async def _check_via_proxy(
    client: httpx.AsyncClient, url: str, proxy_url: Optional[str], timeout: float
) -> ImageValidation:
    if not proxy_url:
        return _INVALID
    try:
        resp = await client.head(proxy_url, params={"url": url}, timeout=timeout)
    except httpx.HTTPError as e:
        logging.warning("Proxy validation failed for %s: %s", url, e)
        return _INVALID
    if resp.is_success and _is_image(resp):
        logging.info("Proxy validation successful for %s", url)
        return ImageValidation(valid=True, redirected_url=resp.headers.get("x-final-url") or None)
    return _INVALID


async def validate_image_url(
    client: httpx.AsyncClient,
    url: str,
    *,
    proxy_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ImageValidation:
    """HEAD-check that ``url`` serves an image.

    A 403 or a cross-origin transport failure gets exactly one re-check
    through the image proxy before the URL is declared invalid.
    """
    if proxy_url is None:
        proxy_url = CONFIG.image_proxy_url
    if timeout is None:
        timeout = CONFIG.image_check_timeout_sec

    try:
        resp = await client.head(url, headers=IMAGE_CHECK_HEADERS, follow_redirects=True, timeout=timeout)
    except httpx.HTTPError as e:
        message = str(e)
        # Only hit when a proxy or custom transport reports the block in its message
        if "CORS" in message or "blocked by CORS policy" in message:
            logging.warning("CORS error for %s: %s", url, message)
            proxied = await _check_via_proxy(client, url, proxy_url, timeout)
            if proxied.valid:
                return proxied
        logging.info("Image validation error for %s: %s", url, message or type(e).__name__)
        return _INVALID

    redirected_url = str(resp.url) if resp.history else None
    logging.debug(
        "Image validation [%s]: status=%s, content-type=%s",
        url,
        resp.status_code,
        resp.headers.get("content-type"),
    )

    if resp.status_code == 404:
        return _INVALID
    if resp.status_code == 403:
        proxied = await _check_via_proxy(client, url, proxy_url, timeout)
        if proxied.valid:
            return ImageValidation(valid=True, redirected_url=proxied.redirected_url or redirected_url)
        return _INVALID
    if resp.status_code >= 400:
        return _INVALID
    if not _is_image(resp):
        return _INVALID
    return ImageValidation(valid=True, redirected_url=redirected_url)


async def collect_live_images(
    client: httpx.AsyncClient,
    images: Sequence[Any],
    *,
    proxy_url: Optional[str] = None,
) -> List[Dict[str, str]]:
    """Dedupe, sanitize and validate images, keeping described live ones in order."""
    candidates = [
        {"url": image, "description": ""} if isinstance(image, str) else dict(image)
        for image in images
    ]

    async def check(image: Dict[str, Any]) -> Optional[Dict[str, str]]:
        sanitized = sanitize_url(str(image.get("url", "")))
        validation = await validate_image_url(client, sanitized, proxy_url=proxy_url)
        if not validation.valid:
            return None
        return {
            "url": validation.redirected_url or sanitized,
            "description": image.get("description") or "",
        }

    checked = await asyncio.gather(*(check(image) for image in deduplicate_by_domain_and_url(candidates)))
    return [image for image in checked if image is not None and image["description"]]
