import logging
from typing import Dict, List, Optional, Sequence

from bs4 import BeautifulSoup
import httpx
from pydantic import BaseModel, Field

from .config import CONFIG
from .llm import LanguageModel
from .messages import Message


SUGGEST_SYSTEM = """\
You are a trip planning question generator. Create exactly 3 questions for the search engine \
based on the message history you are given.
The questions should be open-ended and keep the whole context of the conversation. Limit each question to 5-10 words.
Always carry the user's context so the next search knows exactly what to look for.
For weather conversations, ask about news, events or other topics that are not the weather.
For location conversations, ask about the culture, history or other topics related to the location.
Do not use pronouns like he, she, him, his or her. Always use the proper nouns from the context."""

METADATA_HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; Wayfarer/1.0)", "Accept": "text/html"}


class SuggestedQuestions(BaseModel):
    questions: List[str] = Field(
        ..., min_length=3, description="The generated questions based on the message history."
    )


async def suggest_questions(llm: LanguageModel, history: Sequence[Message]) -> List[str]:
    transcript = "\n".join(f"{m.role}: {m.text()}" for m in history if m.text())
    result = await llm.generate_object(
        model=CONFIG.suggest_model,
        schema=SuggestedQuestions,
        system=SUGGEST_SYSTEM,
        prompt=transcript,
        temperature=0,
    )
    return [q.strip() for q in result.questions][:3]


async def fetch_metadata(client: httpx.AsyncClient, url: str) -> Optional[Dict[str, str]]:
    """Title and meta description of a page, or None when it cannot be fetched."""
    try:
        resp = await client.get(url, headers=METADATA_HEADERS, follow_redirects=True)
        resp.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logging.warning("Metadata fetch failed for %s: %s", url, e)
        return None

    soup = BeautifulSoup(resp.text, "lxml")
    title = soup.title.get_text(strip=True) if soup.title else ""
    tag = soup.find("meta", attrs={"name": "description"})
    description = tag.get("content", "").strip() if tag else ""
    return {"title": title, "description": description}
