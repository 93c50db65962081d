import asyncio
import re
from typing import AsyncIterator, Pattern

from .llm import ModelChunk


WORD_CHUNKING: Pattern[str] = re.compile(r"\S+\s+")


async def smooth_stream(
    chunks: AsyncIterator[ModelChunk],
    delay_ms: int = 15,
    chunking: Pattern[str] = WORD_CHUNKING,
) -> AsyncIterator[ModelChunk]:
    """Re-slice text deltas into whole words with a small pause between them.

    Buffered text is flushed before any non-text chunk and at the end.
    """
    buffer = ""
    async for chunk in chunks:
        if chunk.type != "text-delta":
            if buffer:
                yield ModelChunk("text-delta", text=buffer)
                buffer = ""
            yield chunk
            continue

        buffer += chunk.text
        while True:
            match = chunking.search(buffer)
            if match is None:
                break
            yield ModelChunk("text-delta", text=buffer[: match.end()])
            buffer = buffer[match.end():]
            if delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)

    if buffer:
        yield ModelChunk("text-delta", text=buffer)
