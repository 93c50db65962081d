from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Type, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from pydantic import BaseModel


T = TypeVar("T", bound=BaseModel)


def load_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


@dataclass(frozen=True)
class RequestContext:
    """Caller timezone and the single "now" shared by every tool in a request."""

    timezone: str
    now: datetime
    user_id: str = ""

    @classmethod
    def create(cls, timezone: Optional[str], user_id: str = "", now: Optional[datetime] = None) -> "RequestContext":
        tz_name = (timezone or "").strip()
        if load_zone(tz_name) is None:
            if tz_name:
                logging.warning("Unknown timezone %r, using UTC", tz_name)
            tz_name = "UTC"
        if now is None:
            now = datetime.now(tz=dt_timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=dt_timezone.utc)
        return cls(timezone=tz_name, now=now, user_id=user_id)

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def local_now(self) -> datetime:
        return self.now.astimezone(self.zone)

    def today_label(self) -> str:
        # e.g. "Mon, Oct 19, 2026"
        return self.local_now().strftime("%a, %b %d, %Y")


class StructuredModel(Protocol):
    async def generate_object(
        self,
        *,
        model: str,
        schema: Type[T],
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> T:
        ...


def _discard(_: Dict[str, Any]) -> None:
    return None


@dataclass
class ToolContext:
    request: RequestContext
    http: httpx.AsyncClient
    llm: Optional[StructuredModel] = None
    model: str = ""
    annotate: Callable[[Dict[str, Any]], None] = field(default=_discard)
