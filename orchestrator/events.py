import asyncio
from dataclasses import dataclass, field
import json
from typing import Any, AsyncIterator, Callable, Dict, Optional


TERMINAL_TYPES = frozenset({"finish", "error"})
DONE_SSE = "data: [DONE]\n\n"


@dataclass
class StreamEvent:
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    pass_number: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_TYPES

    def to_sse(self) -> str:
        return f"data: {json.dumps({'type': self.type, **self.data}, default=str)}\n\n"


class DataStream:
    """Outbound channel both passes and their tools write into."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[StreamEvent]] = asyncio.Queue()

    def write(self, event: StreamEvent) -> None:
        self._queue.put_nowait(event)

    def annotator(self, pass_number: int) -> Callable[[Dict[str, Any]], None]:
        def annotate(annotation: Dict[str, Any]) -> None:
            self.write(StreamEvent("annotation", {"annotation": annotation}, pass_number))

        return annotate

    def close(self) -> None:
        self._queue.put_nowait(None)

    async def events(self) -> AsyncIterator[StreamEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event
